"""Terminal interface using Blessed for display and Curtsies for input."""

import logging
import select
import sys
import termios
from typing import Iterable, Optional

import blessed

from .renderer import (
    ClearScreen, Instruction, MoveTo, Write,
    STYLE_FILLER, STYLE_GUTTER, STYLE_HELP, STYLE_STATUS, STYLE_TEXT,
)

logger = logging.getLogger(__name__)


class TerminalInterface:
    """Handles terminal I/O using Blessed.

    Owns the alternate screen and raw input mode between ``setup()`` and
    ``cleanup()``; the editor guarantees ``cleanup()`` runs on every exit
    path.
    """

    def __init__(self, terminal: Optional[blessed.Terminal] = None):
        """Initialize with a terminal instance (or create one)."""
        self.term = terminal or blessed.Terminal()
        self.is_fullscreen = False
        self._curtsies_input: Optional[object] = None
        self._curtsies_active: bool = False

    def setup(self):
        """Enter fullscreen mode and prepare terminal."""
        print(self.term.enter_fullscreen + self.term.clear, end='', flush=True)
        self.is_fullscreen = True
        if self._curtsies_input is None:
            try:
                from curtsies import Input  # type: ignore
                # Enter raw mode immediately so reads work
                self._curtsies_input = Input(keynames='curtsies')  # type: ignore
                self._curtsies_input.__enter__()
                self._curtsies_active = True
            except Exception as e:
                # Justification: curtsies may fail to initialize without a
                # real tty (CI, pipes). Run without input rather than crash.
                logger.warning(f"Keyboard input unavailable: {e}")
                self._curtsies_input = None
                self._curtsies_active = False

    def cleanup(self):
        """Exit fullscreen mode and restore terminal."""
        if self._curtsies_input is not None:
            try:
                if self._curtsies_active:
                    # Exit raw mode context
                    self._curtsies_input.__exit__(None, None, None)  # type: ignore
            except Exception as e:
                # Justification: teardown must go on to restore the screen
                # even if leaving raw mode fails.
                logger.warning(f"Could not leave raw input mode: {e}")
            finally:
                self._curtsies_input = None
                self._curtsies_active = False
        if self.is_fullscreen:
            print(self.term.normal + self.term.exit_fullscreen + self.term.normal_cursor,
                  end='', flush=True)
            self.is_fullscreen = False

    def style(self, name: str) -> str:
        """Escape sequence that starts a renderer cell style."""
        if name == STYLE_GUTTER or name == STYLE_HELP:
            return self.term.bright_black
        if name == STYLE_FILLER:
            return self.term.blue
        if name == STYLE_STATUS:
            return self.term.black_on_white
        return ''

    def encode(self, instructions: Iterable[Instruction]) -> str:
        """Translate renderer instructions into one terminal string."""
        out = []
        for ins in instructions:
            if isinstance(ins, MoveTo):
                out.append(self.term.move_yx(ins.row, ins.col))
            elif isinstance(ins, Write):
                if ins.style == STYLE_TEXT:
                    out.append(ins.text)
                else:
                    out.append(self.style(ins.style) + ins.text + self.term.normal)
            elif isinstance(ins, ClearScreen):
                out.append(self.term.home + self.term.clear)
            else:
                raise TypeError(f"unknown instruction {ins!r}")
        return ''.join(out)

    def apply(self, instructions: Iterable[Instruction]) -> None:
        """Write instructions to the screen in a single flush.

        Write failures (OSError) propagate to the caller.
        """
        print(self.encode(instructions) + self.term.normal_cursor, end='', flush=True)

    def get_key(self, timeout=None):
        """Get a single keypress from the user.

        Args:
            timeout: Timeout in seconds (None for blocking, 0 for non-blocking)

        Returns:
            The curtsies key name, or None if nothing arrived.
        """
        if self._curtsies_input is None:
            return None
        if timeout is None:
            return str(next(self._curtsies_input))  # blocks
        t = 0.0 if timeout == 0 else float(timeout)
        r, _, _ = select.select([sys.stdin], [], [], t)
        if not r:
            return None
        return str(next(self._curtsies_input))

    @property
    def width(self):
        """Terminal width in columns."""
        return self.term.width

    @property
    def height(self):
        """Terminal height in rows, including status bar and help line."""
        return self.term.height


def disable_flow_control():
    """Let Ctrl-S and Ctrl-Q reach the program instead of the tty.

    Returns:
        The previous termios settings, or None if unchanged
    """
    try:
        old_settings = termios.tcgetattr(sys.stdin)
        new_settings = list(old_settings)
        # Disable IXON/IXOFF in input flags (index 0)
        new_settings[0] &= ~(termios.IXON | termios.IXOFF)
        termios.tcsetattr(sys.stdin, termios.TCSANOW, new_settings)
        return old_settings
    except (termios.error, AttributeError, OSError, ValueError):
        # Not a tty (tests, pipes); nothing to change
        return None


def restore_tty_settings(old_settings) -> None:
    """Undo ``disable_flow_control``; a None argument is a no-op."""
    if old_settings is None:
        return
    try:
        termios.tcsetattr(sys.stdin, termios.TCSANOW, old_settings)
    except (termios.error, OSError):
        logger.debug("Could not restore tty settings")
