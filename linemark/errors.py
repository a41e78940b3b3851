"""Exceptions raised by the buffer model."""


class EditorError(Exception):
    """Base class for recoverable editing errors."""


class OutOfBounds(EditorError, IndexError):
    """A line or column index is outside the valid range.

    Raised before any mutation happens; the buffer is left untouched.
    """

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.line = line
        self.column = column


class Empty(EditorError):
    """The operation had nothing to act on (e.g. delete at end of document)."""
