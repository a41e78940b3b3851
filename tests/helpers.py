"""Shared helpers for editor tests."""

from unittest.mock import Mock

from linemark.editor import EditorLoop
from linemark.keyboard import KeyEvent


def make_editor(lines=None, width=80, height=24, **kwargs):
    """EditorLoop on a fake terminal of the given size."""
    terminal = Mock()
    terminal.width = width
    terminal.height = height
    return EditorLoop(lines=lines, terminal=terminal, **kwargs)


def press(editor, *keys):
    """Feed keys to the editor; plain strings are typed one character at a time."""
    for key in keys:
        if isinstance(key, KeyEvent):
            editor.handle_key_event(key)
        else:
            for ch in key:
                editor.handle_key_event(KeyEvent.char(ch))
