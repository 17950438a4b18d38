"""
ProjectSession - one project's conversation history, end to end.

Typical round trip::

    session = ProjectSession(store, project)
    session.render()                 # chain -> legatio.md
    # ... user types below "# ASK MODEL BELOW" ...
    prompt = session.commit()        # remainder -> new pending prompt
    session.record_response(prompt.prompt_id, answer)

Every call that writes the canvas records the chain's leaf on the project
(``current_prompt_id``). Calls made without an explicit leaf use that leaf,
so reading the canvas back always compares it with the chain it was
rendered from.

Canvas operations for a project are serialised by an in-process lock keyed
by project id. Nothing guards against other processes editing the canvas.
"""

import logging
import threading
import weakref
from pathlib import Path

from legatio.history.canvas import CanvasMatch, CanvasMatcher, CanvasWriter, read_canvas
from legatio.history.chain import ChainResolver, PromptIndex
from legatio.history.context import ContextBuilder
from legatio.schemas.records import Project, Prompt, Scroll
from legatio.storage.record_store import FileRecordStore

_logger = logging.getLogger(__name__)

# Locks live as long as some session holds them
_project_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
_project_locks_guard = threading.Lock()


def project_lock(project_id: str) -> threading.RLock:
    """Return the process-wide lock for *project_id*, creating it on first use."""
    with _project_locks_guard:
        lock = _project_locks.get(project_id)
        if lock is None:
            lock = threading.RLock()
            _project_locks[project_id] = lock
        return lock


class ProjectSession:
    """Resolve, render and reconcile the conversation history of one project."""

    def __init__(
        self,
        store: FileRecordStore,
        project: Project,
        strict: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.project = project
        self._logger = logger or _logger
        self.resolver = ChainResolver(strict=strict, logger=self._logger)
        self.writer = CanvasWriter(logger=self._logger)
        self.matcher = CanvasMatcher(logger=self._logger)
        self.context_builder = ContextBuilder(logger=self._logger)
        self._lock = project_lock(project.project_id)

    @property
    def canvas_path(self) -> Path:
        return self.project.canvas_path

    # --- Chain ------------------------------------------------------------

    def snapshot(self) -> list[Prompt]:
        return self.store.fetch_prompts(self.project.project_id)

    def index(self) -> PromptIndex:
        return PromptIndex(self.snapshot())

    def current_leaf(
        self, leaf_id: str | None = None, prompts: list[Prompt] | None = None
    ) -> Prompt | None:
        """
        Pick the leaf a chain should end at.

        Args:
            leaf_id: Explicit leaf. When omitted, the leaf last written to the
                canvas is used, or the latest prompt if there is none
            prompts: Snapshot to pick from (fetched when omitted)

        Returns:
            The leaf prompt, or None when the project has no prompts

        Raises:
            KeyError: If *leaf_id* is not a prompt of this project
        """
        index = PromptIndex(prompts if prompts is not None else self.snapshot())
        if leaf_id is None:
            return self._rendered_leaf(index) or index.latest()
        leaf = index.get(leaf_id)
        if leaf is None:
            raise KeyError(f"Prompt {leaf_id} not found in project {self.project.project_id}")
        return leaf

    def _rendered_leaf(self, index: PromptIndex) -> Prompt | None:
        # Re-read the project: another session may have rendered since
        project = self.store.fetch_project(self.project.project_id) or self.project
        if not project.current_prompt_id:
            return None
        return index.get(project.current_prompt_id)

    def _remember_leaf(self, chain: list[Prompt]) -> None:
        prompt_id = chain[-1].prompt_id if chain else ""
        if self.store.set_current_prompt(self.project.project_id, prompt_id):
            self.project = self.project.model_copy(update={"current_prompt_id": prompt_id})

    def chain(self, leaf_id: str | None = None) -> list[Prompt]:
        """Chain from the root to *leaf_id* (or to the canvas's current leaf)."""
        prompts = self.snapshot()
        leaf = self.current_leaf(leaf_id, prompts)
        if leaf is None:
            return []
        return self.resolver.resolve(prompts, leaf)

    # --- Canvas -----------------------------------------------------------

    def _write(self, chain: list[Prompt]) -> str:
        text = self.writer.write(self.canvas_path, chain)
        self._remember_leaf(chain)
        return text

    def render(self, leaf_id: str | None = None) -> str:
        """Write the chain ending at *leaf_id* to the canvas and return the text."""
        with self._lock:
            return self._write(self.chain(leaf_id))

    def inspect_canvas(self, leaf_id: str | None = None) -> CanvasMatch:
        with self._lock:
            chain = self.chain(leaf_id)
            return self.matcher.inspect(read_canvas(self.canvas_path), chain)

    def pending_input(self, leaf_id: str | None = None) -> str:
        """Text in the canvas that is not part of the recorded chain yet."""
        with self._lock:
            return self.matcher.match_file(self.canvas_path, self.chain(leaf_id))

    def commit(self, leaf_id: str | None = None) -> Prompt | None:
        """
        Store the canvas remainder as a new pending prompt and re-render.

        The new prompt's parent is the chain leaf. Nothing is stored when the
        remainder is blank.

        Returns:
            The new prompt, or None if there was no new input
        """
        with self._lock:
            prompts = self.snapshot()
            leaf = self.current_leaf(leaf_id, prompts)
            chain = self.resolver.resolve(prompts, leaf) if leaf else []
            remainder = self.matcher.match_file(self.canvas_path, chain)
            if not remainder.strip():
                self._logger.info("Canvas has no new input to commit")
                return None

            prompt = Prompt.create(
                project_id=self.project.project_id,
                request=remainder,
                parent_id=leaf.prompt_id if leaf else "",
            )
            self.store.store_prompt(prompt)
            self._logger.info(
                f"Committed {len(remainder)} char(s) as prompt {prompt.prompt_id}",
                extra={
                    "event": "prompt_committed",
                    "prompt_id": prompt.prompt_id,
                    "remainder_chars": len(remainder),
                },
            )
            self._write([*chain, prompt])
            return prompt

    def record_response(self, prompt_id: str, response: str) -> bool:
        """Fill in the response of a prompt and re-render its branch."""
        with self._lock:
            if not self.store.update_prompt(prompt_id, "response", response):
                return False
            self._logger.info(
                f"Recorded response for prompt {prompt_id}",
                extra={"event": "response_recorded", "prompt_id": prompt_id},
            )
            self._write(self.chain(prompt_id))
            return True

    def delete_prompt(self, prompt_id: str) -> bool:
        with self._lock:
            return self.store.delete_prompt(prompt_id)

    # --- Scrolls ----------------------------------------------------------

    def scrolls(self) -> list[Scroll]:
        return self.store.fetch_scrolls(self.project.project_id)

    def system_prompt(self) -> str:
        """Preamble built from the project's scrolls, in attachment order."""
        return self.context_builder.build(self.scrolls())

    def attach_scroll(self, path: str | Path) -> Scroll:
        scroll = Scroll.from_file(path, self.project.project_id)
        self.store.store_scroll(scroll)
        self._logger.info(f"Attached scroll {scroll.name}")
        return scroll

    def refresh_scrolls(self) -> list[Scroll]:
        """Re-read every scroll from disk. Unreadable files keep their stored content."""
        refreshed = []
        for scroll in self.scrolls():
            try:
                content = Path(scroll.path).read_text(encoding="utf-8")
            except OSError as e:
                self._logger.warning(f"Cannot refresh scroll {scroll.path}: {e}")
                refreshed.append(scroll)
                continue
            if content != scroll.content:
                self.store.update_scroll_content(scroll.scroll_id, content)
                scroll = scroll.model_copy(update={"content": content})
            refreshed.append(scroll)
        return refreshed
