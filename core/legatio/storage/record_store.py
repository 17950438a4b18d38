"""
Record Store - Projects, prompts and scrolls in a single records.json.

Layout::

    {base_path}/
      records.json    # Single source of truth (RecordState)

Every read loads the whole document at once, so a prompt snapshot is never
half-updated. Every mutation runs load -> modify -> atomic write under one
lock, which serialises writers inside this process.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TypeVar

from pydantic import ValidationError

from legatio.errors import StoreError
from legatio.schemas.records import Project, Prompt, RecordState, Scroll
from legatio.utils.io import atomic_write

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Prompt fields that update_prompt() may change
UPDATABLE_PROMPT_FIELDS = frozenset({"request", "response", "parent_id"})


class FileRecordStore:
    """File-backed record store."""

    def __init__(self, base_path: str | Path):
        """
        Initialize record store.

        Args:
            base_path: Directory holding records.json (e.g., ~/.legatio/data)
        """
        self.base_path = Path(base_path)
        self.records_path = self.base_path / "records.json"
        self._lock = threading.Lock()

    # === INTERNALS ===

    def _load(self) -> RecordState:
        if not self.records_path.exists():
            return RecordState()
        try:
            return RecordState.model_validate_json(self.records_path.read_text(encoding="utf-8"))
        except ValidationError as e:
            logger.error(f"Record store {self.records_path} is corrupt: {e}")
            raise StoreError(f"Record store {self.records_path} is corrupt") from e

    def _save(self, state: RecordState) -> None:
        self.base_path.mkdir(parents=True, exist_ok=True)
        state.updated_at = datetime.now().isoformat()
        with atomic_write(self.records_path) as f:
            f.write(state.model_dump_json(indent=2))

    def _mutate(self, change: Callable[[RecordState], T]) -> T:
        """Apply *change* to the stored state and persist it atomically."""
        with self._lock:
            state = self._load()
            result = change(state)
            self._save(state)
            return result

    def _read(self) -> RecordState:
        with self._lock:
            return self._load()

    # === PROJECT OPERATIONS ===

    def store_project(self, project: Project) -> Project:
        """
        Register a project.

        Returns:
            *project*, or the already registered project with the same path
        """

        def _store(state: RecordState) -> Project:
            for existing in state.projects:
                if existing.path == project.path:
                    return existing
            state.projects.append(project)
            logger.info(f"Stored project {project.project_id} at {project.path}")
            return project

        return self._mutate(_store)

    def fetch_projects(self) -> list[Project]:
        return self._read().projects

    def fetch_project(self, project_id: str) -> Project | None:
        for project in self._read().projects:
            if project.project_id == project_id:
                return project
        return None

    def delete_project(self, project_id: str) -> bool:
        """Delete a project together with its prompts and scrolls."""

        def _delete(state: RecordState) -> bool:
            before = len(state.projects)
            state.projects = [p for p in state.projects if p.project_id != project_id]
            if len(state.projects) == before:
                return False
            state.prompts = [p for p in state.prompts if p.project_id != project_id]
            state.scrolls = [s for s in state.scrolls if s.project_id != project_id]
            logger.info(f"Deleted project {project_id}")
            return True

        return self._mutate(_delete)

    def set_current_prompt(self, project_id: str, prompt_id: str) -> bool:
        """
        Remember which prompt ends the chain currently on the project's canvas.

        Returns:
            True if updated, False if the project does not exist
        """

        def _update(state: RecordState) -> bool:
            for i, project in enumerate(state.projects):
                if project.project_id == project_id:
                    state.projects[i] = project.model_copy(
                        update={"current_prompt_id": prompt_id}
                    )
                    return True
            return False

        return self._mutate(_update)

    # === PROMPT OPERATIONS ===

    def fetch_prompts(self, project_id: str) -> list[Prompt]:
        """Snapshot of every prompt in a project. Order is not significant."""
        return [p for p in self._read().prompts if p.project_id == project_id]

    def fetch_prompt(self, prompt_id: str) -> Prompt | None:
        for prompt in self._read().prompts:
            if prompt.prompt_id == prompt_id:
                return prompt
        return None

    def store_prompt(self, prompt: Prompt) -> None:
        def _store(state: RecordState) -> None:
            if any(p.prompt_id == prompt.prompt_id for p in state.prompts):
                raise ValueError(f"Prompt {prompt.prompt_id} already exists")
            state.prompts.append(prompt)

        self._mutate(_store)
        logger.debug(f"Stored prompt {prompt.prompt_id}")

    def update_prompt(self, prompt_id: str, field: str, value: str) -> bool:
        """
        Set one field of a stored prompt.

        Args:
            prompt_id: Prompt to update
            field: One of ``request``, ``response``, ``parent_id``
            value: New value

        Returns:
            True if updated, False if the prompt does not exist

        Raises:
            ValueError: If *field* cannot be updated
        """
        if field not in UPDATABLE_PROMPT_FIELDS:
            raise ValueError(f"Invalid prompt field '{field}'")

        def _update(state: RecordState) -> bool:
            for i, prompt in enumerate(state.prompts):
                if prompt.prompt_id == prompt_id:
                    state.prompts[i] = prompt.model_copy(update={field: value})
                    return True
            return False

        updated = self._mutate(_update)
        if not updated:
            logger.warning(f"Cannot update missing prompt {prompt_id}")
        return updated

    def delete_prompt(self, prompt_id: str) -> bool:
        """
        Delete a prompt.

        Children of the deleted prompt are re-linked to its parent so the
        branches below it stay reachable. A project whose canvas ended at the
        deleted prompt moves on to that parent.

        Returns:
            True if deleted, False if not found
        """

        def _delete(state: RecordState) -> bool:
            target = next((p for p in state.prompts if p.prompt_id == prompt_id), None)
            if target is None:
                return False
            prompts = []
            for prompt in state.prompts:
                if prompt.prompt_id == prompt_id:
                    continue
                if prompt.parent_id == prompt_id:
                    prompt = prompt.model_copy(update={"parent_id": target.parent_id})
                prompts.append(prompt)
            state.prompts = prompts
            successor = "" if target.is_root else target.parent_id
            for i, project in enumerate(state.projects):
                if project.current_prompt_id == prompt_id:
                    state.projects[i] = project.model_copy(
                        update={"current_prompt_id": successor}
                    )
            logger.info(f"Deleted prompt {prompt_id}")
            return True

        return self._mutate(_delete)

    # === SCROLL OPERATIONS ===

    def fetch_scrolls(self, project_id: str) -> list[Scroll]:
        """Scrolls of a project in the order they were stored."""
        return [s for s in self._read().scrolls if s.project_id == project_id]

    def store_scroll(self, scroll: Scroll) -> None:
        def _store(state: RecordState) -> None:
            state.scrolls.append(scroll)

        self._mutate(_store)
        logger.debug(f"Stored scroll {scroll.scroll_id} from {scroll.path}")

    def update_scroll_content(self, scroll_id: str, content: str) -> bool:
        def _update(state: RecordState) -> bool:
            for i, scroll in enumerate(state.scrolls):
                if scroll.scroll_id == scroll_id:
                    state.scrolls[i] = scroll.model_copy(update={"content": content})
                    return True
            return False

        return self._mutate(_update)

    def delete_scroll(self, scroll_id: str) -> bool:
        def _delete(state: RecordState) -> bool:
            before = len(state.scrolls)
            state.scrolls = [s for s in state.scrolls if s.scroll_id != scroll_id]
            return len(state.scrolls) != before

        return self._mutate(_delete)
