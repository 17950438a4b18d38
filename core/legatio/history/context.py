"""Build the system preamble from a project's scrolls."""

import logging
from collections.abc import Iterable

from legatio.schemas.records import Scroll

_logger = logging.getLogger(__name__)


class ContextBuilder:
    """Concatenate scrolls into one preamble, each fenced under its file name.

    Scrolls keep the order the caller passes them in; nothing is reordered or
    deduplicated.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    def build(self, scrolls: Iterable[Scroll]) -> str:
        parts = []
        for scroll in scrolls:
            parts.append(f"```{scroll.name}\n{scroll.content}```\n")
        self._logger.debug(f"Built preamble from {len(parts)} scroll(s)")
        return "".join(parts)
