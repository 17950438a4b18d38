"""Exception types raised by the conversation-history engine."""

from pathlib import Path


class LegatioError(Exception):
    """Base class for all legatio errors."""

    pass


class FileAccessError(LegatioError, OSError):
    """Raised when the canvas document cannot be read or written.

    Keeps the ``errno``, ``strerror`` and ``filename`` of the underlying
    ``OSError`` so callers that catch ``OSError`` see the same failure.
    """

    def __init__(self, action: str, path: str | Path, cause: OSError):
        super().__init__(cause.errno, cause.strerror or str(cause), str(path))
        self.action = action
        self.cause = cause

    def __str__(self) -> str:
        return f"Failed to {self.action} canvas file {self.filename}: {self.strerror}"


class DataIntegrityError(LegatioError):
    """Raised in strict resolution mode when a prompt chain is broken.

    Either a referenced parent is missing from the snapshot or the parent
    links loop back onto an already visited prompt.
    """

    def __init__(self, message: str, prompt_id: str, parent_id: str):
        super().__init__(message)
        self.prompt_id = prompt_id
        self.parent_id = parent_id


class StoreError(LegatioError):
    """Raised when the record store document is unreadable or malformed."""

    pass
