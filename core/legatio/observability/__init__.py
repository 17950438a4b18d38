"""
Observability module for structured logging.

- ContextVar-based log context (project_id, prompt_id) stamped on every record
- Structured JSON logging for production
- Human-readable logging for development
"""

from legatio.observability.logging import (
    clear_log_context,
    configure_logging,
    get_log_context,
    set_log_context,
)

__all__ = [
    "configure_logging",
    "get_log_context",
    "set_log_context",
    "clear_log_context",
]
