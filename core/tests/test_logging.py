"""Tests for structured logging and log context."""

from __future__ import annotations

import json
import logging

import pytest

from legatio.observability import (
    clear_log_context,
    configure_logging,
    get_log_context,
    set_log_context,
)
from legatio.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    strip_ansi_codes,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="legatio.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_set_merges(self):
        set_log_context(project_id="p1")
        set_log_context(prompt_id="q1")
        assert get_log_context() == {"project_id": "p1", "prompt_id": "q1"}

    def test_get_returns_copy(self):
        set_log_context(project_id="p1")
        get_log_context()["project_id"] = "changed"
        assert get_log_context()["project_id"] == "p1"

    def test_clear(self):
        set_log_context(project_id="p1")
        clear_log_context()
        assert get_log_context() == {}


class TestStructuredFormatter:
    def test_includes_context_and_extra(self):
        set_log_context(project_id="p1")
        entry = json.loads(
            StructuredFormatter().format(make_record(event="canvas_written", chain_length=3))
        )

        assert entry["message"] == "hello"
        assert entry["level"] == "info"
        assert entry["logger"] == "legatio.test"
        assert entry["project_id"] == "p1"
        assert entry["event"] == "canvas_written"
        assert entry["chain_length"] == 3

    def test_strips_ansi(self):
        entry = json.loads(StructuredFormatter().format(make_record("\033[31mred\033[0m")))
        assert entry["message"] == "red"

    def test_strip_ansi_codes(self):
        assert strip_ansi_codes("\x1b[1;32mok\x1b[0m") == "ok"


class TestHumanReadableFormatter:
    def test_prefix_from_context(self):
        set_log_context(project_id="0123456789", prompt_id="abcdefghij")
        line = HumanReadableFormatter().format(make_record(event="x"))

        assert "[project:01234567 | prompt:abcdefgh]" in line
        assert line.endswith("hello [x]")

    def test_no_context(self):
        line = HumanReadableFormatter().format(make_record())
        assert "[project:" not in line


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_format(self):
        configure_logging(level="debug", format="json")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_auto_uses_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging(format="auto")
        assert isinstance(logging.getLogger().handlers[0].formatter, StructuredFormatter)

    def test_auto_defaults_to_human(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.delenv("ENV", raising=False)
        configure_logging(format="auto")
        assert isinstance(logging.getLogger().handlers[0].formatter, HumanReadableFormatter)
