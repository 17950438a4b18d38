"""Tests for CanvasWriter and CanvasMatcher."""

from __future__ import annotations

import errno
from pathlib import Path

import pytest

from legatio.errors import FileAccessError
from legatio.history.canvas import (
    ASK_MARKER,
    LEGACY_ASK_MARKER,
    CanvasMatcher,
    CanvasWriter,
    read_canvas,
)
from legatio.schemas.records import Prompt

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_chain() -> list[Prompt]:
    """Chain A -> B -> C with distinct texts."""
    a = Prompt(prompt_id="A", project_id="proj", request="Describe AI", response="AI is awesome")
    b = Prompt(
        prompt_id="B",
        project_id="proj",
        parent_id="A",
        request="Explain Rust",
        response="Rust is fast",
    )
    c = Prompt(
        prompt_id="C",
        project_id="proj",
        parent_id="B",
        request="Compare them",
        response="Both are useful",
    )
    return [a, b, c]


EXPECTED_RENDER = (
    "# PROMPT A\nDescribe AI\n"
    "# OUTPUT A\nAI is awesome\n"
    "# PROMPT B\nExplain Rust\n"
    "# OUTPUT B\nRust is fast\n"
    "# PROMPT C\nCompare them\n"
    "# OUTPUT C\nBoth are useful\n"
    "# ASK MODEL BELOW\n"
)


# ===================================================================
# CanvasWriter
# ===================================================================


class TestCanvasWriter:
    def test_render_format(self):
        assert CanvasWriter().render(make_chain()) == EXPECTED_RENDER

    def test_render_is_deterministic(self):
        writer = CanvasWriter()
        assert writer.render(make_chain()) == writer.render(make_chain())

    def test_render_empty_chain_is_marker_only(self):
        assert CanvasWriter().render([]) == f"{ASK_MARKER}\n"

    def test_render_pending_prompt_has_empty_output(self):
        pending = Prompt(prompt_id="P", project_id="proj", request="Why?")
        assert CanvasWriter().render([pending]) == "# PROMPT P\nWhy?\n# OUTPUT P\n\n# ASK MODEL BELOW\n"

    def test_write_creates_file(self, tmp_path: Path):
        path = tmp_path / "legatio.md"
        text = CanvasWriter().write(path, make_chain())

        assert text == EXPECTED_RENDER
        assert path.read_text(encoding="utf-8") == EXPECTED_RENDER

    def test_write_overwrites_user_edits(self, tmp_path: Path):
        path = tmp_path / "legatio.md"
        path.write_text("stale content that is much longer than the new canvas " * 20)

        CanvasWriter().write(path, make_chain()[:1])

        assert path.read_text(encoding="utf-8") == (
            "# PROMPT A\nDescribe AI\n# OUTPUT A\nAI is awesome\n# ASK MODEL BELOW\n"
        )

    def test_write_leaves_no_temp_files(self, tmp_path: Path):
        CanvasWriter().write(tmp_path / "legatio.md", make_chain())
        assert [p.name for p in tmp_path.iterdir()] == ["legatio.md"]

    def test_write_to_missing_directory_raises(self, tmp_path: Path):
        path = tmp_path / "nope" / "legatio.md"
        with pytest.raises(FileAccessError) as exc_info:
            CanvasWriter().write(path, make_chain())
        assert exc_info.value.errno == errno.ENOENT
        assert exc_info.value.filename == str(path)
        assert isinstance(exc_info.value, OSError)


# ===================================================================
# CanvasMatcher
# ===================================================================


class TestCanvasMatcher:
    def test_unedited_canvas_has_empty_remainder(self):
        chain = make_chain()
        document = CanvasWriter().render(chain)
        assert CanvasMatcher().match(document, chain) == ""

    @pytest.mark.parametrize(
        "appended",
        ["Write about programming languages.", "line one\nline two\n", "  spaced  ", "é ✓ 日本"],
    )
    def test_appended_text_is_returned_exactly(self, appended):
        chain = make_chain()
        document = CanvasWriter().render(chain) + appended
        assert CanvasMatcher().match(document, chain) == appended

    def test_follow_up_question(self):
        chain = make_chain()
        document = CanvasWriter().render(chain) + "\nFollow-up question"
        assert CanvasMatcher().match(document, chain) == "\nFollow-up question"

    def test_edit_in_earlier_block_truncates_at_block_start(self):
        chain = make_chain()
        rendered = CanvasWriter().render(chain)
        edited = rendered.replace("Explain Rust", "Explain Bust")

        result = CanvasMatcher().inspect(edited, chain)

        block_start = edited.index("# PROMPT B")
        assert result.remainder == edited[block_start - 1 :]
        assert result.remainder.startswith("\n# PROMPT B\nExplain Bust")
        assert result.matched == 1
        assert not result.complete

    def test_edited_response_keeps_cursor_after_request(self):
        chain = make_chain()
        edited = CanvasWriter().render(chain).replace("Rust is fast", "Rust is slow")

        result = CanvasMatcher().inspect(edited, chain)

        assert result.remainder.startswith("\n# OUTPUT B\nRust is slow")
        assert result.matched == 1

    def test_later_blocks_not_checked_after_mismatch(self):
        chain = make_chain()
        edited = CanvasWriter().render(chain).replace("Describe AI", "Describe ML")

        result = CanvasMatcher().inspect(edited, chain)

        assert result.matched == 0
        assert result.cursor == 0
        assert result.remainder == edited

    def test_missing_marker_returns_text_after_last_response(self):
        chain = make_chain()
        document = CanvasWriter().render(chain).replace(f"{ASK_MARKER}\n", "") + "New idea"
        assert CanvasMatcher().match(document, chain) == "\nNew idea"

    def test_text_typed_above_marker_is_kept(self):
        chain = make_chain()
        document = CanvasWriter().render(chain).replace(ASK_MARKER, f"extra thought\n{ASK_MARKER}")

        remainder = CanvasMatcher().match(document, chain)

        assert remainder == f"\nextra thought\n{ASK_MARKER}\n"

    def test_marker_at_end_of_file_without_newline(self):
        chain = make_chain()
        document = CanvasWriter().render(chain).rstrip("\n")
        assert CanvasMatcher().match(document, chain) == ""

    def test_crlf_after_marker(self):
        chain = make_chain()
        document = CanvasWriter().render(chain).replace(f"{ASK_MARKER}\n", f"{ASK_MARKER}\r\n")
        assert CanvasMatcher().match(document + "hi", chain) == "hi"

    def test_legacy_marker_is_skipped(self):
        chain = make_chain()
        document = CanvasWriter().render(chain).replace(ASK_MARKER, f"\n{LEGACY_ASK_MARKER}")

        assert CanvasMatcher().match(document + "Next question", chain) == "Next question"

    def test_pending_prompt_matches_empty_response(self):
        chain = make_chain()
        pending = Prompt(prompt_id="P", project_id="proj", parent_id="C", request="And Go?")
        chain.append(pending)
        document = CanvasWriter().render(chain) + "More"

        result = CanvasMatcher().inspect(document, chain)

        assert result.complete
        assert result.remainder == "More"

    def test_empty_chain(self):
        assert CanvasMatcher().match(f"{ASK_MARKER}\nfirst question", []) == "first question"
        assert CanvasMatcher().match("no marker at all", []) == "no marker at all"

    def test_match_file_reads_without_writing(self, tmp_path: Path):
        chain = make_chain()
        path = tmp_path / "legatio.md"
        CanvasWriter().write(path, chain)
        with open(path, "a", encoding="utf-8") as f:
            f.write("Next?")
        before = path.stat().st_mtime_ns

        assert CanvasMatcher().match_file(path, chain) == "Next?"
        assert path.stat().st_mtime_ns == before
        assert path.read_text(encoding="utf-8").endswith("Next?")

    def test_match_file_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileAccessError) as exc_info:
            CanvasMatcher().match_file(tmp_path / "legatio.md", make_chain())
        assert exc_info.value.errno == errno.ENOENT
        assert "read" in str(exc_info.value)

    def test_read_canvas_missing_is_os_error(self, tmp_path: Path):
        with pytest.raises(OSError):
            read_canvas(tmp_path / "absent.md")
