"""Editing modes and the transitions between them."""

import logging
from enum import Enum

from .buffer import TextBuffer
from .cursor import Cursor

logger = logging.getLogger(__name__)


class Mode(Enum):
    """Interpretation context for key events."""
    NORMAL = "normal"
    INSERT = "insert"


class ModeState:
    """Holds the current mode; Normal on startup."""

    def __init__(self, mode: Mode = Mode.NORMAL):
        self.mode = mode

    @property
    def is_insert(self) -> bool:
        return self.mode is Mode.INSERT

    @property
    def allows_past_end(self) -> bool:
        """Whether the cursor may sit one past the last character."""
        return self.mode is Mode.INSERT

    def enter_insert(self) -> bool:
        """Switch to insert mode.

        Returns:
            True if the mode changed
        """
        if self.mode is Mode.INSERT:
            return False
        logger.debug("mode: NORMAL -> INSERT")
        self.mode = Mode.INSERT
        return True

    def enter_normal(self, buffer: TextBuffer, cursor: Cursor) -> bool:
        """Leave insert mode, pulling the cursor back onto the last character.

        Returns:
            True if the mode changed
        """
        if self.mode is Mode.NORMAL:
            return False
        logger.debug("mode: INSERT -> NORMAL")
        self.mode = Mode.NORMAL
        cursor.clamp_to_buffer(buffer, past_end=False)
        cursor.desired_column = cursor.column
        return True
