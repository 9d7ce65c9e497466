#!/usr/bin/env python3
"""
Assistant function runner - command line entry point

Usage:
    python run.py chat --owner alice            # Interactive chat (type 'exit' to quit)
    python run.py assistants                    # List assistants and their owners
    python run.py create-assistant --owner alice --name "Helper"
    python run.py delete-assistant --owner alice
    python run.py functions --owner alice       # Functions declared on the assistant
    python run.py add-function --owner alice functions/getCurrentDateString.py
    python run.py remove-function --owner alice getCurrentDateString
    python run.py reload --owner alice          # Re-import every declared function
    python run.py --max-wait 30 chat --owner alice   # Override the run deadline
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.app import AppContext
from src.assistant.models import UIAction
from src.config import apply_overrides, load_config
from src.config_schema import AppConfig
from src.tools.errors import ToolkitError

logger = logging.getLogger("run")

EXIT_WORDS: frozenset[str] = frozenset({"break", "exit"})


def configure_logging(config: AppConfig, quiet: bool = False) -> None:
    level = "WARNING" if quiet else config.logging.level
    logging.basicConfig(level=level, format=config.logging.format)


def print_ui_action(action: UIAction) -> None:
    print(f"[ui] {json.dumps(action.to_dict(), default=str)}")


def cmd_chat(app: AppContext, args: argparse.Namespace) -> int:
    """Interactive loop: one session, one thread, until an exit word."""
    loaded = app.load_functions(args.owner)
    print(f"Loaded {len(loaded)} function(s): {', '.join(loaded) or '-'}")

    session_id = args.session or app.sessions.new_session_id()
    print(f"Session {session_id}. Type 'exit' to quit.")
    while True:
        try:
            text = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if text.lower() in EXIT_WORDS:
            break
        if not text:
            continue
        try:
            reply = app.coordinator.handle_user_message(args.owner, session_id, text)
        except ToolkitError as e:
            print(f"error: {e}")
            continue
        print(reply)
    return 0


def cmd_assistants(app: AppContext, args: argparse.Namespace) -> int:
    for info in app.assistants.list_assistants():
        functions = ", ".join(info.function_names) or "-"
        print(f"{info.id}\t{info.owner_key or '-'}\t{info.name or '-'}\t{functions}")
    return 0


def cmd_create_assistant(app: AppContext, args: argparse.Namespace) -> int:
    info = app.assistants.create_or_find(
        args.owner,
        name=args.name,
        instructions=args.instructions,
        model=args.model,
        description=args.description,
    )
    print(f"Assistant {info.id} ready for {args.owner}")
    return 0


def cmd_delete_assistant(app: AppContext, args: argparse.Namespace) -> int:
    count = app.assistants.delete(args.owner)
    print(f"Deleted {count} assistant(s) for {args.owner}")
    return 0 if count else 1


def cmd_functions(app: AppContext, args: argparse.Namespace) -> int:
    for name in app.assistants.list_function_names(args.owner):
        print(name)
    return 0


def cmd_add_function(app: AppContext, args: argparse.Namespace) -> int:
    descriptor = app.add_function_from_file(args.owner, Path(args.path))
    print(f"Function {descriptor.name} added for {args.owner}")
    return 0


def cmd_remove_function(app: AppContext, args: argparse.Namespace) -> int:
    if app.remove_function(args.owner, args.name):
        print(f"Function {args.name} removed for {args.owner}")
        return 0
    print(f"Function {args.name} is not declared for {args.owner}")
    return 1


def cmd_reload(app: AppContext, args: argparse.Namespace) -> int:
    names = app.load_functions(args.owner)
    print(f"Loaded {len(names)} function(s): {', '.join(names) or '-'}")
    return 0


COMMANDS: dict[str, Callable[[AppContext, argparse.Namespace], int]] = {
    "chat": cmd_chat,
    "assistants": cmd_assistants,
    "create-assistant": cmd_create_assistant,
    "delete-assistant": cmd_delete_assistant,
    "functions": cmd_functions,
    "add-function": cmd_add_function,
    "remove-function": cmd_remove_function,
    "reload": cmd_reload,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Chat with an OpenAI assistant that runs local Python functions"
    )
    parser.add_argument(
        "--config", default=None, help="Path to config file (default: config/config.yaml)"
    )
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    parser.add_argument(
        "--max-wait", type=float, default=None, help="Override runs.max_wait_seconds"
    )
    parser.add_argument(
        "--poll-interval", type=float, default=None, help="Override runs.poll_interval_seconds"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def owned(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--owner", required=True, help="Owner key of the assistant")
        return p

    chat = owned("chat", "Start an interactive conversation")
    chat.add_argument("--session", default=None, help="Reuse a session id")

    sub.add_parser("assistants", help="List assistants")

    create = owned("create-assistant", "Create the owner's assistant if missing")
    create.add_argument("--name", default=None)
    create.add_argument("--instructions", default=None)
    create.add_argument("--model", default=None)
    create.add_argument("--description", default=None)

    owned("delete-assistant", "Delete the owner's assistant(s)")
    owned("functions", "List functions declared on the owner's assistant")

    add = owned("add-function", "Load a function module and declare it")
    add.add_argument("path", help="Path to the function module")

    remove = owned("remove-function", "Withdraw a declared function")
    remove.add_argument("name", help="Function name")

    owned("reload", "Re-import every declared function")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    overrides = {
        key: value
        for key, value in (
            ("runs.max_wait_seconds", args.max_wait),
            ("runs.poll_interval_seconds", args.poll_interval),
        )
        if value is not None
    }
    if overrides:
        config = apply_overrides(overrides)
    configure_logging(config, quiet=args.quiet)

    app = AppContext.from_config(on_ui_action=print_ui_action)
    try:
        return COMMANDS[args.command](app, args)
    except ToolkitError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
