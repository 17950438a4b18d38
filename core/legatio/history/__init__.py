"""Conversation history: chain resolution, canvas rendering and matching."""

from legatio.history.canvas import (
    ASK_MARKER,
    CanvasMatch,
    CanvasMatcher,
    CanvasWriter,
    read_canvas,
)
from legatio.history.chain import ChainResolver, PromptIndex, resolve_chain
from legatio.history.context import ContextBuilder
from legatio.history.preview import format_prompt, format_prompt_depth

__all__ = [
    # Chain
    "ChainResolver",
    "PromptIndex",
    "resolve_chain",
    # Canvas
    "ASK_MARKER",
    "CanvasMatch",
    "CanvasMatcher",
    "CanvasWriter",
    "read_canvas",
    # Context
    "ContextBuilder",
    # Preview
    "format_prompt",
    "format_prompt_depth",
]
