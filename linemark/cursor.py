"""Cursor position and movement over a TextBuffer."""

from dataclasses import dataclass

from .buffer import TextBuffer


def column_limit(buffer: TextBuffer, line: int, past_end: bool = True) -> int:
    """Largest valid column on ``line``.

    Insert mode may sit one past the last character (``past_end``);
    normal mode stops on the last character.
    """
    length = buffer.line_length(line)
    if past_end:
        return length
    return max(0, length - 1)


@dataclass
class Cursor:
    line: int = 0
    column: int = 0
    # Column to aim for on vertical moves; survives passing over short lines
    desired_column: int = 0

    @property
    def position(self) -> tuple[int, int]:
        return (self.line, self.column)

    def move_left(self) -> None:
        if self.column > 0:
            self.column -= 1
        self.desired_column = self.column

    def move_right(self, buffer: TextBuffer, past_end: bool = True) -> None:
        limit = column_limit(buffer, self.line, past_end)
        if self.column < limit:
            self.column += 1
        elif self.column > limit:
            self.column = limit
        self.desired_column = self.column

    def move_up(self, buffer: TextBuffer, past_end: bool = True) -> None:
        self.move_lines(buffer, -1, past_end)

    def move_down(self, buffer: TextBuffer, past_end: bool = True) -> None:
        self.move_lines(buffer, 1, past_end)

    def move_lines(self, buffer: TextBuffer, delta: int, past_end: bool = True) -> None:
        """Move ``delta`` lines up (negative) or down, keeping desired_column."""
        target = max(0, min(self.line + delta, buffer.line_count() - 1))
        if target == self.line:
            return
        self.line = target
        self.column = min(self.desired_column, column_limit(buffer, target, past_end))

    def move_line_start(self) -> None:
        self.column = 0
        self.desired_column = 0

    def move_line_end(self, buffer: TextBuffer, past_end: bool = True) -> None:
        self.column = column_limit(buffer, self.line, past_end)
        self.desired_column = self.column

    def move_to(self, buffer: TextBuffer, line: int, column: int, past_end: bool = True) -> None:
        """Jump to ``(line, column)``, clamped to the buffer."""
        self.line = line
        self.column = column
        self.clamp_to_buffer(buffer, past_end)
        self.desired_column = self.column

    def clamp_to_buffer(self, buffer: TextBuffer, past_end: bool = True) -> None:
        """Pull the cursor back inside the buffer after an external edit.

        ``desired_column`` is kept so vertical intent survives the clamp.
        """
        self.line = max(0, min(self.line, buffer.line_count() - 1))
        self.column = max(0, min(self.column, column_limit(buffer, self.line, past_end)))
