"""Command-line demo for the lineedit editor.

Each subcommand is a small REPL showing one way of wiring up an
:class:`~lineedit.editor.Editor`::

    lineedit minimal
    lineedit default --history ~/.lineedit_history
    lineedit password
    lineedit validate --vi
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from lineedit.completion import FilenameCompleter
from lineedit.config import ColorMode, CompletionType, EditMode, load_config
from lineedit.editor import Editor
from lineedit.errors import ConfigError, ErrorKind, Err, HistoryError, Ok
from lineedit.highlight import PasswordHighlighter, SimpleHighlighter
from lineedit.hint import HistoryHinter
from lineedit.validate import MatchingBracketValidator, Validation

logger = logging.getLogger(__name__)

EXAMPLES = ("minimal", "default", "password", "validate")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lineedit",
        description="Interactive line editor demos",
    )
    parser.add_argument(
        "example", nargs="?", default="default", choices=EXAMPLES, help="Demo to run (default: default)"
    )
    parser.add_argument("--vi", action="store_true", help="Use Vi key bindings")
    parser.add_argument("--history", metavar="PATH", help="History file to load and save")
    parser.add_argument("--config", metavar="PATH", help="JSON config file (default: ~/.lineedit/config.json)")
    parser.add_argument("--log-file", metavar="PATH", help="Write log records to PATH")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug records (to stderr without --log-file)")
    return parser.parse_args(argv)


def _setup_logging(args: argparse.Namespace) -> None:
    # Log records would corrupt the prompt, so stderr is only used when asked
    if not args.log_file and not args.verbose:
        logging.basicConfig(level=logging.WARNING, handlers=[logging.NullHandler()])
        return
    kwargs: dict[str, Any] = {"filename": args.log_file} if args.log_file else {"stream": sys.stderr}
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Examples
# ---------------------------------------------------------------------------


def _load_history(editor: Editor, path: str | None) -> None:
    if not path:
        return
    try:
        editor.load_history(path, missing_ok=True)
    except HistoryError as e:
        print(f"Warning: {e}", file=sys.stderr)


def _save_history(editor: Editor, path: str | None) -> None:
    if not path:
        return
    try:
        editor.save_history(path)
    except HistoryError as e:
        print(f"Warning: {e}", file=sys.stderr)


def run_minimal(editor: Editor, args: argparse.Namespace) -> int:
    """Echo lines until EOF with no completion, hints or colour."""
    while True:
        result = editor.read_line("> ")
        if isinstance(result, Err):
            return 0 if result.kind is ErrorKind.EOF else 1
        print(f"Line: {result.text}")


def run_default(editor: Editor, args: argparse.Namespace) -> int:
    """Filename completion, history hints, bracket matching and multi-line input."""
    editor.set_completer(FilenameCompleter())
    editor.set_highlighter(SimpleHighlighter())
    editor.set_hinter(HistoryHinter())
    editor.set_validator(MatchingBracketValidator())
    editor.set_completion_type(CompletionType.LIST)
    _load_history(editor, args.history)
    try:
        count = 1
        while True:
            result = editor.read_line(f"{count}> ", continuation_prompt="... ")
            if isinstance(result, Ok):
                print(f"Line: {result.text}")
                editor.add_history_entry(result.text)
                count += 1
            elif result.kind is ErrorKind.INTERRUPTED:
                print("^C")
            elif result.kind is ErrorKind.EOF:
                print("^D")
                return 0
            else:
                print(f"Error: {result.message}", file=sys.stderr)
                return 1
    finally:
        _save_history(editor, args.history)


def run_password(editor: Editor, args: argparse.Namespace) -> int:
    """Masked input; nothing typed here goes into history."""
    editor.set_highlighter(PasswordHighlighter())
    editor.set_color_mode(ColorMode.FORCED)
    editor.set_auto_add_history(False)
    result = editor.read_line("Password: ")
    if isinstance(result, Err):
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    print(f"Read {len(result.text)} characters")
    return 0


def _validate_number(line: str, pos: int) -> Validation:
    if not line.strip():
        return Validation.invalid("Enter a number")
    try:
        int(line)
    except ValueError:
        return Validation.invalid(f"Not a number: {line!r}")
    return Validation.valid()


def run_validate(editor: Editor, args: argparse.Namespace) -> int:
    """Enter is refused until the line is an integer."""
    editor.set_validator(_validate_number)
    result = editor.read_line("Number: ")
    if isinstance(result, Err):
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    print(f"Number: {int(result.text)}")
    return 0


_RUNNERS = {
    "minimal": run_minimal,
    "default": run_default,
    "password": run_password,
    "validate": run_validate,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _setup_logging(args)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    if args.vi:
        config = config.replace(edit_mode=EditMode.VI)
    if args.example == "minimal":
        config = config.replace(color_mode=ColorMode.DISABLED)

    logger.debug("Running %s example", args.example)
    with Editor(config) as editor:
        return _RUNNERS[args.example](editor, args)


if __name__ == "__main__":
    sys.exit(main())
