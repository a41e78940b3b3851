"""Linemark - a small modal terminal text editor."""

from .buffer import TextBuffer
from .cursor import Cursor
from .editor import EditorLoop
from .modes import Mode, ModeState
from .renderer import Renderer

__all__ = [
    'TextBuffer',
    'Cursor',
    'EditorLoop',
    'Mode',
    'ModeState',
    'Renderer',
]
