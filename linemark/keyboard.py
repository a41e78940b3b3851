"""Keyboard input handling using curtsies-style tokens."""

from typing import Optional
from dataclasses import dataclass
from enum import Enum


class KeyType(Enum):
    """Types of key events."""
    REGULAR = "regular"  # Printable character
    CTRL = "ctrl"  # Ctrl + letter
    SPECIAL = "special"  # Arrows, enter, backspace, escape, ...


@dataclass(frozen=True)
class KeyEvent:
    """A decoded logical key event."""
    key_type: KeyType
    value: str  # The base key (e.g., 'a', 'left', 'backspace')
    raw: str = ""  # The token the event was decoded from

    @classmethod
    def char(cls, ch: str) -> "KeyEvent":
        return cls(KeyType.REGULAR, ch, ch)

    @classmethod
    def ctrl(cls, letter: str) -> "KeyEvent":
        return cls(KeyType.CTRL, letter, f"<Ctrl-{letter}>")

    @classmethod
    def special(cls, name: str) -> "KeyEvent":
        return cls(KeyType.SPECIAL, name, f"<{name.upper()}>")


class KeyboardHandler:
    """Decodes terminal key tokens into KeyEvents."""

    def __init__(self, terminal_interface):
        """Initialize with a terminal interface."""
        self.terminal = terminal_interface

    def get_key_event(self, timeout: Optional[float] = None) -> Optional[KeyEvent]:
        """Get next key event from the terminal, or None on timeout."""
        key = self.terminal.get_key(timeout)
        if not key:
            return None
        return self.parse_key(key)

    def parse_key(self, key) -> KeyEvent:
        """Parse a curtsies key name (or a raw character) into a KeyEvent.

        Args:
            key: curtsies key name such as '<LEFT>' or '<Ctrl-q>', or a
                single character

        Returns:
            Parsed KeyEvent
        """
        key_str = str(key)

        if len(key_str) > 2 and key_str.startswith('<') and key_str.endswith('>'):
            return self._parse_token(key_str)

        if len(key_str) == 1:
            o = ord(key_str)
            if o == 27:
                return KeyEvent(KeyType.SPECIAL, 'escape', key_str)
            if o == 127 or o == 8:
                return KeyEvent(KeyType.SPECIAL, 'backspace', key_str)
            if o == 9:
                return KeyEvent(KeyType.SPECIAL, 'tab', key_str)
            if 1 <= o <= 26:  # Ctrl-A .. Ctrl-Z
                ch = chr(ord('a') + o - 1)
                # Ctrl-J / Ctrl-M arrive for the Enter key
                if ch in ('j', 'm'):
                    return KeyEvent(KeyType.SPECIAL, 'enter', key_str)
                return KeyEvent(KeyType.CTRL, ch, key_str)

        return KeyEvent(KeyType.REGULAR, key_str, key_str)

    def _parse_token(self, key_str: str) -> KeyEvent:
        name = key_str[1:-1].lower().replace('+', '-')
        # '<->' would otherwise split into nothing
        parts = name.split('-') if len(name) > 1 and '-' in name else [name]
        mods = set(parts[:-1])
        base = parts[-1]

        if base in ('pageup', 'page_up', 'prior'):
            base = 'page_up'
        elif base in ('pagedown', 'page_down', 'next'):
            base = 'page_down'
        elif base in ('esc', 'escape'):
            base = 'escape'
        elif base in ('return',):
            base = 'enter'

        if base in ('space', 'spacebar', 'spc') and not mods:
            return KeyEvent(KeyType.REGULAR, ' ', key_str)
        if 'ctrl' in mods and len(base) == 1:
            if base in ('j', 'm'):
                return KeyEvent(KeyType.SPECIAL, 'enter', key_str)
            if base == 'i':
                return KeyEvent(KeyType.SPECIAL, 'tab', key_str)
            if base == 'h':
                return KeyEvent(KeyType.SPECIAL, 'backspace', key_str)
            return KeyEvent(KeyType.CTRL, base, key_str)
        # Unknown tokens stay SPECIAL so the command table ignores them
        return KeyEvent(KeyType.SPECIAL, base, key_str)
