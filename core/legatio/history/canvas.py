"""
Canvas - the user-editable text document that mirrors a prompt chain.

Format (UTF-8, one file per project)::

    # PROMPT <prompt_id>
    <request text>
    # OUTPUT <prompt_id>
    <response text>
    ...
    # ASK MODEL BELOW
    <free-form user text>

The writer renders a chain into this format. The matcher re-reads the
document and finds where it stops agreeing with the chain; everything past
that point is the remainder, i.e. new input the user has not committed yet.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from legatio.errors import FileAccessError
from legatio.schemas.records import Prompt
from legatio.utils.io import atomic_write

_logger = logging.getLogger(__name__)

PROMPT_HEADER = "# PROMPT"
OUTPUT_HEADER = "# OUTPUT"
ASK_MARKER = "# ASK MODEL BELOW"
# Misspelt marker written by older versions, still accepted when reading
LEGACY_ASK_MARKER = "# ASK MODEL BELLOW"
_ASK_MARKERS = (ASK_MARKER, LEGACY_ASK_MARKER)


def read_canvas(path: str | Path) -> str:
    """Read the whole canvas document. Raises FileAccessError on any OS error."""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise FileAccessError("read", path, e) from e


class CanvasWriter:
    """Render chains to canvas text and write them to disk."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    def render(self, chain: Sequence[Prompt]) -> str:
        """
        Render *chain* (root first) to canvas text.

        Pure: identical chains always produce identical text. The free-input
        zone after the marker is left empty.
        """
        parts: list[str] = []
        for prompt in chain:
            parts.append(f"{PROMPT_HEADER} {prompt.prompt_id}\n{prompt.request}\n")
            parts.append(f"{OUTPUT_HEADER} {prompt.prompt_id}\n{prompt.response}\n")
        parts.append(f"{ASK_MARKER}\n")
        return "".join(parts)

    def write(self, path: str | Path, chain: Sequence[Prompt]) -> str:
        """
        Render *chain* and replace the file at *path* with it.

        The file is created if missing and replaced in one atomic rename, so
        a concurrent reader never sees a half-written canvas.

        Returns:
            The rendered text

        Raises:
            FileAccessError: If the file cannot be written
        """
        text = self.render(chain)
        try:
            with atomic_write(path) as f:
                f.write(text)
        except OSError as e:
            self._logger.error(f"Failed to write canvas file {path}: {e}")
            raise FileAccessError("write", path, e) from e

        self._logger.info(
            f"Wrote canvas with {len(chain)} prompt(s) to {path}",
            extra={"event": "canvas_written", "chain_length": len(chain)},
        )
        return text


@dataclass
class CanvasMatch:
    """Outcome of matching a canvas document against a chain.

    Attributes:
        remainder: Unmatched trailing text, the user's uncommitted input.
        matched: Number of prompts whose request and response were both found.
        complete: True when every prompt in the chain matched.
        cursor: Offset in the document where the remainder starts.
    """

    remainder: str
    matched: int
    complete: bool
    cursor: int


class CanvasMatcher:
    """
    Find the user's new input in a canvas document.

    Walks the chain root first with a cursor into the document. For each
    prompt, its request and then its response must be found as literal
    substrings at or after the cursor; each hit moves the cursor just past
    the match. The first miss stops the walk and everything from the cursor
    on is the remainder. Later prompts are not checked. Interior edits and
    reordering therefore show up as "everything from here on is new", not as
    a diff.

    When the whole chain matches, a following ``# ASK MODEL BELOW`` line (or
    the ``# ASK MODEL BELLOW`` line older versions wrote) is skipped and the
    remainder is what comes after it (or everything after the last response
    if the marker was deleted).

    Worst case cost is O(len(document) * len(chain)) substring scanning,
    fine for single-conversation documents.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    def match(self, document: str, chain: Sequence[Prompt]) -> str:
        """Return the unmatched trailing portion of *document*."""
        return self.inspect(document, chain).remainder

    def match_file(self, path: str | Path, chain: Sequence[Prompt]) -> str:
        """
        Read the canvas at *path* and return its remainder. Never writes.

        Raises:
            FileAccessError: If the file cannot be read
        """
        try:
            document = read_canvas(path)
        except FileAccessError as e:
            self._logger.error(str(e))
            raise
        return self.match(document, chain)

    def inspect(self, document: str, chain: Sequence[Prompt]) -> CanvasMatch:
        """Match *document* against *chain* and report how far it got."""
        cursor = 0
        matched = 0
        for prompt in chain:
            found = _find_after(document, prompt.request, cursor)
            if found is None:
                break
            cursor = found
            found = _find_after(document, prompt.response, cursor)
            if found is None:
                break
            cursor = found
            matched += 1

        complete = matched == len(chain)
        if complete:
            cursor = _skip_marker(document, cursor)
        else:
            self._logger.debug(
                f"Canvas diverges from chain after {matched} of {len(chain)} prompt(s)"
            )

        remainder = document[cursor:]
        self._logger.debug(
            f"Canvas remainder is {len(remainder)} char(s)",
            extra={"remainder_chars": len(remainder)},
        )
        return CanvasMatch(remainder=remainder, matched=matched, complete=complete, cursor=cursor)


def _find_after(document: str, needle: str, start: int) -> int | None:
    """Offset just past the first *needle* at or after *start*, or None."""
    index = document.find(needle, start)
    if index == -1:
        return None
    return index + len(needle)


def _find_marker(document: str, start: int) -> tuple[int, str] | None:
    """Earliest ask marker (current or legacy spelling) at or after *start*."""
    hits = [(document.find(marker, start), marker) for marker in _ASK_MARKERS]
    hits = [hit for hit in hits if hit[0] != -1]
    return min(hits) if hits else None


def _skip_marker(document: str, cursor: int) -> int:
    """Move *cursor* past the ask marker line.

    Only blank lines and block headers (the ``# OUTPUT`` line of a pending
    prompt) may sit between *cursor* and the marker. Text typed above the
    marker stays in the remainder.
    """
    found = _find_marker(document, cursor)
    if found is None:
        return cursor
    index, marker = found
    for line in document[cursor:index].splitlines():
        if line.strip() and not line.startswith((f"{PROMPT_HEADER} ", f"{OUTPUT_HEADER} ")):
            return cursor
    end = index + len(marker)
    if document.startswith("\r\n", end):
        return end + 2
    if document.startswith("\n", end):
        return end + 1
    return end
