"""Line-oriented text storage for the editor.

Columns are code point indices into the line string. Display width is the
renderer's concern.
"""

from typing import Iterable, Optional

from .errors import Empty, OutOfBounds


class TextBuffer:
    """Ordered list of lines; never fewer than one.

    All mutation goes through the methods below. Indices are validated
    before anything changes, so a failed call leaves the buffer intact.
    """

    def __init__(self, lines: Optional[Iterable[str]] = None):
        self._lines: list[str] = []
        self.replace_all(lines if lines is not None else [""])

    @classmethod
    def from_text(cls, text: str) -> "TextBuffer":
        return cls(text.split("\n") if text else [""])

    # --- Queries ---

    def line_count(self) -> int:
        return len(self._lines)

    def line_length(self, index: int) -> int:
        self._check_line(index)
        return len(self._lines[index])

    def line(self, index: int) -> str:
        self._check_line(index)
        return self._lines[index]

    def lines(self) -> list[str]:
        """Return a copy of the document as a list of lines."""
        return list(self._lines)

    def to_text(self) -> str:
        return "\n".join(self._lines)

    # --- Character edits ---

    def insert_char(self, line: int, col: int, ch: str) -> int:
        """Insert a single character at ``col`` in ``line``.

        Returns:
            The column just after the inserted character.
        """
        if len(ch) != 1:
            raise ValueError(f"expected a single character, got {ch!r}")
        if ch == "\n":
            raise ValueError("use split_line to insert a line break")
        self._check_column(line, col)
        text = self._lines[line]
        self._lines[line] = text[:col] + ch + text[col:]
        return col + 1

    def delete_char(self, line: int, col: int) -> str:
        """Remove and return the character at ``col``.

        Raises Empty when ``col`` is one past the end of the line; joining
        lines is left to join_with_next / join_with_previous.
        """
        self._check_column(line, col)
        text = self._lines[line]
        if col == len(text):
            raise Empty(f"no character at line {line}, column {col}")
        self._lines[line] = text[:col] + text[col + 1:]
        return text[col]

    # --- Line structure ---

    def split_line(self, line: int, col: int) -> int:
        """Split ``line`` at ``col``; the tail becomes a new line after it.

        Returns:
            Index of the new line.
        """
        self._check_column(line, col)
        text = self._lines[line]
        self._lines[line] = text[:col]
        self._lines.insert(line + 1, text[col:])
        return line + 1

    def join_with_previous(self, line: int) -> int:
        """Append ``line`` to the line above it and remove it.

        Returns:
            Column of the join point in the merged line.
        """
        self._check_line(line)
        if line == 0:
            raise Empty("first line has no previous line")
        join_col = len(self._lines[line - 1])
        self._lines[line - 1] += self._lines.pop(line)
        return join_col

    def join_with_next(self, line: int) -> int:
        """Append the following line to ``line``.

        Returns:
            Column of the join point in the merged line.
        """
        self._check_line(line)
        if line + 1 >= len(self._lines):
            raise Empty("last line has no next line")
        join_col = len(self._lines[line])
        self._lines[line] += self._lines.pop(line + 1)
        return join_col

    def insert_line(self, index: int, content: str = "") -> None:
        if not 0 <= index <= len(self._lines):
            raise OutOfBounds(f"cannot insert line at {index}", line=index)
        if "\n" in content:
            raise ValueError("line content must not contain a newline")
        self._lines.insert(index, content)

    def remove_line(self, index: int) -> str:
        """Remove ``index`` and return its content.

        The sole remaining line is emptied instead of removed.
        """
        self._check_line(index)
        if len(self._lines) == 1:
            removed = self._lines[0]
            self._lines[0] = ""
            return removed
        return self._lines.pop(index)

    def truncate_line(self, index: int, col: int) -> str:
        """Cut ``index`` at ``col`` and return the removed tail."""
        self._check_column(index, col)
        text = self._lines[index]
        self._lines[index] = text[:col]
        return text[col:]

    def replace_all(self, lines: Iterable[str]) -> None:
        """Replace the whole document (load, undo restore)."""
        new_lines = list(lines)
        for text in new_lines:
            if "\n" in text:
                raise ValueError("line content must not contain a newline")
        self._lines = new_lines or [""]

    # --- Validation ---

    def _check_line(self, index: int) -> None:
        if not 0 <= index < len(self._lines):
            raise OutOfBounds(
                f"line {index} out of range (0..{len(self._lines) - 1})", line=index
            )

    def _check_column(self, line: int, col: int) -> None:
        self._check_line(line)
        length = len(self._lines[line])
        if not 0 <= col <= length:
            raise OutOfBounds(
                f"column {col} out of range (0..{length}) on line {line}",
                line=line,
                column=col,
            )

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"TextBuffer({self._lines!r})"
