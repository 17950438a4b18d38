"""Tests for ContextBuilder and prompt previews."""

from legatio.history.context import ContextBuilder
from legatio.history.preview import format_prompt, format_prompt_depth
from legatio.schemas.records import Prompt, Scroll


def make_scroll(name: str, content: str) -> Scroll:
    return Scroll(scroll_id=name, project_id="proj", path=f"/path/to/{name}", content=content)


class TestContextBuilder:
    def test_concatenates_in_given_order(self):
        scrolls = [make_scroll("b.md", "Bee\n"), make_scroll("a.md", "Ay\n")]

        preamble = ContextBuilder().build(scrolls)

        assert preamble == "```b.md\nBee\n```\n```a.md\nAy\n```\n"

    def test_duplicates_are_kept(self):
        scroll = make_scroll("notes.txt", "same")
        assert ContextBuilder().build([scroll, scroll]).count("```notes.txt\n") == 2

    def test_no_scrolls(self):
        assert ContextBuilder().build([]) == ""

    def test_header_uses_last_path_segment(self):
        scroll = Scroll(scroll_id="s", project_id="p", path="/deep/dir/main.rs", content="fn main")
        assert ContextBuilder().build([scroll]).startswith("```main.rs\n")


class TestPreview:
    def test_short_prompt(self):
        prompt = Prompt(prompt_id="1", project_id="p", request="Hi\nthere", response="Hello")
        assert format_prompt(prompt) == (" |- Prompt: Hi there", " |  Output: Hello")

    def test_long_prompt_is_clipped(self):
        prompt = Prompt(prompt_id="1", project_id="p", request="x" * 100, response="")
        request_line, response_line = format_prompt(prompt)
        assert request_line == " |- Prompt: " + "x" * 40
        assert response_line == " |  Output: "

    def test_depth_prefix(self):
        prompt = Prompt(prompt_id="1", project_id="p", request="Q", response="A")
        assert format_prompt_depth(prompt, 3) == ("---> Prompt: Q", "---> Output: A")
