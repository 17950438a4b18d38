"""
Legatio - conversation history that lives in an editable text file.

Prompts are stored as a flat, parent-linked tree. Any branch can be rendered
to a project's canvas (``legatio.md``); whatever the user writes below the
rendered history becomes the next prompt.
"""

from legatio.errors import DataIntegrityError, FileAccessError, LegatioError, StoreError
from legatio.history import (
    CanvasMatch,
    CanvasMatcher,
    CanvasWriter,
    ChainResolver,
    ContextBuilder,
    PromptIndex,
)
from legatio.schemas import Project, Prompt, Scroll
from legatio.session import ProjectSession
from legatio.storage import FileRecordStore

__all__ = [
    # Records
    "Project",
    "Prompt",
    "Scroll",
    # History
    "CanvasMatch",
    "CanvasMatcher",
    "CanvasWriter",
    "ChainResolver",
    "ContextBuilder",
    "PromptIndex",
    # Session and storage
    "ProjectSession",
    "FileRecordStore",
    # Errors
    "LegatioError",
    "FileAccessError",
    "DataIntegrityError",
    "StoreError",
]
