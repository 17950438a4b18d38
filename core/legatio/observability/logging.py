"""
Structured logging with automatic project context.

Key Features:
- Standard logger.info() calls pick up the active project/prompt context
- ContextVar-based propagation: thread-safe
- Dual output modes: JSON for production, human-readable for development

Components never configure logging themselves. Each one receives a
``logging.Logger`` handle when it is constructed (falling back to its module
logger), and the entry point calls ``configure_logging()`` once.
"""

import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

log_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)

# ANSI escape code pattern (matches \033[...m or \x1b[...m)
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m|\033\[[0-9;]*m")

# Extra fields copied from ``logger.x(..., extra={...})`` into JSON output
_EXTRA_FIELDS = ("event", "project_id", "prompt_id", "chain_length", "remainder_chars")


def strip_ansi_codes(text: str) -> str:
    """Remove ANSI escape codes from text for clean JSON logging."""
    return ANSI_ESCAPE_PATTERN.sub("", text)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Produces machine-parseable log entries with:
    - Standard fields (timestamp, level, logger, message)
    - Log context (project_id, prompt_id)
    - Custom fields from the extra dict
    """

    def format(self, record: logging.LogRecord) -> str:
        context = log_context.get() or {}
        message = strip_ansi_codes(record.getMessage())

        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": message,
        }
        log_entry.update(context)

        for name in _EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is None:
                continue
            log_entry[name] = strip_ansi_codes(value) if isinstance(value, str) else value

        if record.exc_info:
            log_entry["exception"] = strip_ansi_codes(self.formatException(record.exc_info))

        return json.dumps(log_entry)


class HumanReadableFormatter(logging.Formatter):
    """Colorized single-line logs with a short project/prompt prefix."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        context = log_context.get() or {}
        project_id = context.get("project_id", "")
        prompt_id = context.get("prompt_id", "")

        prefix_parts = []
        if project_id:
            prefix_parts.append(f"project:{project_id[:8]}")
        if prompt_id:
            prefix_parts.append(f"prompt:{prompt_id[:8]}")
        context_prefix = f"[{' | '.join(prefix_parts)}] " if prefix_parts else ""

        color = self.COLORS.get(record.levelname, "")
        level = f"{record.levelname:<8}"

        event = ""
        record_event = getattr(record, "event", None)
        if record_event is not None:
            event = f" [{record_event}]"

        line = f"{color}[{level}]{self.RESET} {context_prefix}{record.getMessage()}{event}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    level: str = "INFO",
    format: str = "auto",  # "json", "human", or "auto"
) -> None:
    """
    Configure logging for the application. Call once, from the entry point.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format:
            - "json": Machine-parseable JSON
            - "human": Human-readable with colors
            - "auto": JSON if LOG_FORMAT=json or ENV=production, else human
    """
    if format == "auto":
        log_format_env = os.getenv("LOG_FORMAT", "").lower()
        env = os.getenv("ENV", "development").lower()
        format = "json" if log_format_env == "json" or env == "production" else "human"

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = HumanReadableFormatter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())


def set_log_context(**kwargs: Any) -> None:
    """
    Merge fields into the current log context.

    Example:
        set_log_context(project_id=project.project_id)
        logger.info("Rendered canvas")  # record carries project_id
    """
    current = log_context.get() or {}
    log_context.set({**current, **kwargs})


def get_log_context() -> dict:
    """Return a copy of the current log context (empty dict if unset)."""
    context = log_context.get() or {}
    return context.copy()


def clear_log_context() -> None:
    """Drop all log context fields."""
    log_context.set(None)
