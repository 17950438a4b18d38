"""One-line prompt previews for listings."""

from legatio.schemas.records import Prompt

PREVIEW_CHARS = 40


def _clip(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text[:limit].replace("\n", " ")


def format_prompt(prompt: Prompt) -> tuple[str, str]:
    """Return ``(" |- Prompt: ...", " |  Output: ...")`` for *prompt*."""
    return (f" |- Prompt: {_clip(prompt.request)}", f" |  Output: {_clip(prompt.response)}")


def format_prompt_depth(prompt: Prompt, depth: int) -> tuple[str, str]:
    """Like :func:`format_prompt`, indented by chain depth."""
    indent = "-" * depth
    return (
        f"{indent}> Prompt: {_clip(prompt.request)}",
        f"{indent}> Output: {_clip(prompt.response)}",
    )
