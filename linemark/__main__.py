"""Linemark CLI entry point.

Allows running via `python -m linemark` and provides the console script
defined in `pyproject.toml`.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from .version import get_version_string

USAGE = "usage: linemark [--version] [--keytest] [--log FILE] [--recover] [filename]"


def _escape_bytes(s: str) -> str:
    """Return a printable representation of raw key string."""
    return s.encode('unicode_escape').decode('ascii')


def run_keyboard_test() -> None:
    """Print the KeyEvent decoded for each keypress. Quit with ESC."""
    from .terminal import TerminalInterface, disable_flow_control, restore_tty_settings
    from .keyboard import KeyboardHandler, KeyEvent, KeyType

    print("Keyboard test mode - press keys to see parsed events.")
    print("Quit with ESC.")

    term = TerminalInterface()
    term.setup()
    # Ctrl-S/Ctrl-Q would otherwise be eaten as XOFF/XON
    old_settings = disable_flow_control()
    kb = KeyboardHandler(term)
    try:
        while True:
            ev: KeyEvent | None = kb.get_key_event(timeout=None)
            if not ev:
                continue
            if ev.key_type == KeyType.SPECIAL and ev.value == 'escape':
                print("Exiting keyboard test.")
                break
            print(f"type={ev.key_type.value} value={ev.value} raw='{_escape_bytes(ev.raw)}'")
    finally:
        restore_tty_settings(old_settings)
        term.cleanup()


def parse_args(args: list[str]) -> dict:
    """Parse command-line arguments.

    Raises:
        ValueError: On an unknown option or a missing option value
    """
    options: dict = {"version": False, "keytest": False, "log": None,
                     "recover": False, "filename": None}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("--version", "-V"):
            options["version"] = True
        elif arg in ("--keytest", "--keyboard-test"):
            options["keytest"] = True
        elif arg == "--recover":
            options["recover"] = True
        elif arg == "--log":
            i += 1
            if i >= len(args):
                raise ValueError("--log needs a file name")
            options["log"] = args[i]
        elif arg.startswith("-") and arg != "-":
            raise ValueError(f"unknown option {arg}")
        elif options["filename"] is None:
            options["filename"] = arg
        else:
            raise ValueError("only one file can be edited at a time")
        i += 1
    return options


def configure_logging(log_file: Optional[str]) -> None:
    """Send debug logs to ``log_file``; the terminal belongs to the editor."""
    if log_file is None:
        logging.getLogger().addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[list[str]] = None) -> int:
    try:
        options = parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as e:
        print(f"linemark: {e}", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 2

    if options["version"]:
        print(get_version_string())
        return 0
    if options["keytest"]:
        run_keyboard_test()
        return 0

    configure_logging(options["log"])

    # Lazy import to avoid importing UI deps for --version
    from .editor import EditorLoop
    from .settings_persistence import get_persistence

    persistence = get_persistence()
    editor = EditorLoop(preferences=persistence.load_preferences(), persistence=persistence)
    if options["filename"]:
        try:
            editor.load_file(options["filename"], recover=options["recover"])
        except (OSError, UnicodeDecodeError) as e:
            print(f"linemark: cannot open {options['filename']}: {e}", file=sys.stderr)
            return 1
    editor.run()
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
