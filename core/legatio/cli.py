"""
Command-line interface for legatio.

Usage:
    legatio project add ~/code/my-project
    legatio project list
    legatio scroll add <project_id> notes.md
    legatio render <project_id>
    legatio pending <project_id>
    legatio commit <project_id>
    legatio respond <project_id> <prompt_id> --file answer.md

History commands take an optional ``--leaf <prompt_id>``. Without it they
use the leaf last rendered to the canvas, or the most recently created
prompt before the first render.
"""

import argparse
import logging
import sys
from pathlib import Path

from legatio.config import LegatioConfig
from legatio.errors import LegatioError
from legatio.history.chain import PromptIndex
from legatio.history.preview import format_prompt, format_prompt_depth
from legatio.observability import configure_logging, set_log_context
from legatio.schemas.records import Project
from legatio.session import ProjectSession
from legatio.storage.record_store import FileRecordStore

logger = logging.getLogger(__name__)


def _store(args: argparse.Namespace) -> FileRecordStore:
    return FileRecordStore(args.data_dir)


def _session(args: argparse.Namespace) -> ProjectSession:
    store = _store(args)
    project = store.fetch_project(args.project_id)
    if project is None:
        raise LegatioError(f"Unknown project {args.project_id}")
    set_log_context(project_id=project.project_id)
    return ProjectSession(store, project, strict=args.strict)


# ---------------------------------------------------------------------------
# Project and scroll commands
# ---------------------------------------------------------------------------


def cmd_project_add(args: argparse.Namespace) -> int:
    path = Path(args.path).expanduser().resolve()
    if not path.is_dir():
        print(f"Not a directory: {path}", file=sys.stderr)
        return 1
    project = _store(args).store_project(Project.create(path))
    print(project.project_id)
    return 0


def cmd_project_list(args: argparse.Namespace) -> int:
    for project in _store(args).fetch_projects():
        print(f"{project.project_id}  {project.name}  ({project.path})")
    return 0


def cmd_project_remove(args: argparse.Namespace) -> int:
    if not _store(args).delete_project(args.project_id):
        print(f"Unknown project {args.project_id}", file=sys.stderr)
        return 1
    return 0


def cmd_scroll_add(args: argparse.Namespace) -> int:
    scroll = _session(args).attach_scroll(Path(args.file).expanduser().resolve())
    print(scroll.scroll_id)
    return 0


def cmd_scroll_list(args: argparse.Namespace) -> int:
    for scroll in _session(args).scrolls():
        print(f"{scroll.scroll_id}  {scroll.name}  ({len(scroll.content)} chars)")
    return 0


def cmd_scroll_remove(args: argparse.Namespace) -> int:
    if not _store(args).delete_scroll(args.scroll_id):
        print(f"Unknown scroll {args.scroll_id}", file=sys.stderr)
        return 1
    return 0


def cmd_scroll_refresh(args: argparse.Namespace) -> int:
    scrolls = _session(args).refresh_scrolls()
    print(f"Refreshed {len(scrolls)} scroll(s)")
    return 0


def register_project_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register ``project`` and ``scroll`` commands."""
    project_parser = subparsers.add_parser("project", help="Manage tracked projects")
    project_sub = project_parser.add_subparsers(dest="project_command", required=True)

    add = project_sub.add_parser("add", help="Track a project directory")
    add.add_argument("path", help="Project directory")
    add.set_defaults(func=cmd_project_add)

    project_sub.add_parser("list", help="List projects").set_defaults(func=cmd_project_list)

    remove = project_sub.add_parser("remove", help="Forget a project and its history")
    remove.add_argument("project_id")
    remove.set_defaults(func=cmd_project_remove)

    scroll_parser = subparsers.add_parser("scroll", help="Manage context scrolls")
    scroll_sub = scroll_parser.add_subparsers(dest="scroll_command", required=True)

    add = scroll_sub.add_parser("add", help="Attach a file as a scroll")
    add.add_argument("project_id")
    add.add_argument("file")
    add.set_defaults(func=cmd_scroll_add)

    list_ = scroll_sub.add_parser("list", help="List a project's scrolls")
    list_.add_argument("project_id")
    list_.set_defaults(func=cmd_scroll_list)

    remove = scroll_sub.add_parser("remove", help="Detach a scroll")
    remove.add_argument("scroll_id")
    remove.set_defaults(func=cmd_scroll_remove)

    refresh = scroll_sub.add_parser("refresh", help="Re-read scroll files from disk")
    refresh.add_argument("project_id")
    refresh.set_defaults(func=cmd_scroll_refresh)


# ---------------------------------------------------------------------------
# History commands
# ---------------------------------------------------------------------------


def cmd_prompts(args: argparse.Namespace) -> int:
    index = _session(args).index()
    leaves = {p.prompt_id for p in index.leaves()}
    for prompt in sorted(index, key=lambda p: p.created_at):
        request_line, response_line = format_prompt(prompt)
        marker = "*" if prompt.prompt_id in leaves else " "
        print(f"{marker} {prompt.prompt_id}")
        print(request_line)
        print(response_line)
    return 0


def cmd_chain(args: argparse.Namespace) -> int:
    for depth, prompt in enumerate(_session(args).chain(args.leaf), start=1):
        request_line, response_line = format_prompt_depth(prompt, depth)
        print(f"{request_line}  [{prompt.prompt_id}]")
        print(response_line)
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    session = _session(args)
    session.render(args.leaf)
    print(session.canvas_path)
    return 0


def cmd_pending(args: argparse.Namespace) -> int:
    sys.stdout.write(_session(args).pending_input(args.leaf))
    return 0


def cmd_commit(args: argparse.Namespace) -> int:
    prompt = _session(args).commit(args.leaf)
    if prompt is None:
        print("Nothing to commit", file=sys.stderr)
        return 1
    print(prompt.prompt_id)
    return 0


def cmd_respond(args: argparse.Namespace) -> int:
    if args.file:
        response = Path(args.file).read_text(encoding="utf-8")
    elif args.text is not None:
        response = args.text
    else:
        response = sys.stdin.read()
    if not _session(args).record_response(args.prompt_id, response):
        print(f"Unknown prompt {args.prompt_id}", file=sys.stderr)
        return 1
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    if not _session(args).delete_prompt(args.prompt_id):
        print(f"Unknown prompt {args.prompt_id}", file=sys.stderr)
        return 1
    return 0


def cmd_context(args: argparse.Namespace) -> int:
    sys.stdout.write(_session(args).system_prompt())
    return 0


def register_history_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register chain, canvas and prompt commands."""

    def add(name: str, func, help_text: str, leaf: bool = True) -> argparse.ArgumentParser:
        parser = subparsers.add_parser(name, help=help_text)
        parser.add_argument("project_id")
        if leaf:
            parser.add_argument("--leaf", default=None, help="Prompt the chain ends at")
        parser.set_defaults(func=func)
        return parser

    add("prompts", cmd_prompts, "List every prompt of a project", leaf=False)
    add("chain", cmd_chain, "Show the chain ending at a prompt")
    add("render", cmd_render, "Write the chain to the project canvas")
    add("pending", cmd_pending, "Print canvas input not yet committed")
    add("commit", cmd_commit, "Store canvas input as a new pending prompt")
    add("context", cmd_context, "Print the scroll preamble", leaf=False)

    respond = add("respond", cmd_respond, "Record the response to a prompt", leaf=False)
    respond.add_argument("prompt_id")
    source = respond.add_mutually_exclusive_group()
    source.add_argument("--file", help="Read the response from a file")
    source.add_argument("--text", help="Response text (default: read stdin)")

    delete = add("delete", cmd_delete, "Delete a prompt, keeping its children", leaf=False)
    delete.add_argument("prompt_id")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser(config: LegatioConfig | None = None) -> argparse.ArgumentParser:
    config = config or LegatioConfig()

    parser = argparse.ArgumentParser(
        prog="legatio",
        description="Legatio - branch, edit and replay LLM conversations in plain text",
    )
    parser.add_argument("--data-dir", type=Path, default=config.data_dir, help="Record store dir")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=config.strict_chain,
        help="Fail on broken prompt chains instead of truncating them",
    )
    parser.add_argument("--log-level", default=config.log_level)
    parser.add_argument("--log-format", default=config.log_format, choices=["auto", "json", "human"])

    subparsers = parser.add_subparsers(dest="command", required=True)
    register_project_commands(subparsers)
    register_history_commands(subparsers)
    return parser


def run(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, format=args.log_format)

    try:
        return args.func(args)
    except (LegatioError, KeyError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
