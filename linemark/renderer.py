"""Screen composition and frame diffing.

The renderer turns buffer state into a grid of cells, compares it with the
grid it produced last time and emits abstract terminal instructions for the
cells that changed. It never writes to the terminal itself; see
``TerminalInterface.apply``.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from wcwidth import wcwidth

from .buffer import TextBuffer
from .constants import EditorConstants
from .cursor import Cursor
from .modes import Mode

logger = logging.getLogger(__name__)

# Cell styles; TerminalInterface maps them to blessed attributes
STYLE_TEXT = "text"
STYLE_GUTTER = "gutter"
STYLE_FILLER = "filler"
STYLE_STATUS = "status"
STYLE_HELP = "help"

# Right half of a double-width character
CONTINUATION = ""


@dataclass(frozen=True)
class Cell:
    char: str = " "
    style: str = STYLE_TEXT


@dataclass(frozen=True)
class MoveTo:
    row: int
    col: int


@dataclass(frozen=True)
class Write:
    text: str
    style: str = STYLE_TEXT


@dataclass(frozen=True)
class ClearScreen:
    pass


Instruction = Union[MoveTo, Write, ClearScreen]
Frame = list[list[Cell]]


def char_width(ch: str) -> int:
    """Number of terminal cells ``ch`` occupies (0, 1 or 2)."""
    if ch == '\t':
        return 1
    w = wcwidth(ch)
    # Non-printable characters are shown as a one-cell placeholder
    return 1 if w < 0 else w


def display_width(text: str) -> int:
    return sum(char_width(ch) for ch in text)


def text_to_cells(text: str, width: int, style: str = STYLE_TEXT) -> list[Cell]:
    """Lay ``text`` out in exactly ``width`` cells, truncating and padding.

    Wide characters take two cells; one that would straddle the right
    edge is replaced by a space. Zero-width characters join the
    preceding cell.
    """
    cells: list[Cell] = []
    last_lead = -1
    for ch in text:
        w = char_width(ch)
        if w == 0:
            if last_lead >= 0:
                lead = cells[last_lead]
                cells[last_lead] = Cell(lead.char + ch, lead.style)
            continue
        if len(cells) + w > width:
            if w == 2 and len(cells) < width:
                cells.append(Cell(" ", style))
            break
        if ch == '\t' or wcwidth(ch) < 0:
            ch = " " if ch == '\t' else "?"
        last_lead = len(cells)
        cells.append(Cell(ch, style))
        if w == 2:
            cells.append(Cell(CONTINUATION, style))
    cells.extend(Cell(" ", style) for _ in range(width - len(cells)))
    return cells


class Renderer:
    """Builds frames from buffer state and diffs them against the last one."""

    def __init__(self, line_numbers: bool = True):
        self.line_numbers = line_numbers
        self.scroll_offset = 0  # Buffer line shown in the top text row
        self._last_frame: Optional[Frame] = None

    # --- Geometry ---

    @staticmethod
    def text_rows(height: int) -> int:
        """Rows available for buffer text (status bar and help line excluded)."""
        return max(1, height - 2)

    def gutter_width(self, buffer: TextBuffer) -> int:
        if not self.line_numbers:
            return 0
        digits = len(str(buffer.line_count() + 1))
        return digits + len(EditorConstants.GUTTER_SEPARATOR)

    def scroll_to_cursor(self, cursor: Cursor, rows: int) -> None:
        """Keep the cursor line visible, re-centring when it leaves the view."""
        if self.scroll_offset <= cursor.line < self.scroll_offset + rows:
            return
        self.scroll_offset = max(0, cursor.line - rows // 2)

    def cursor_screen_position(self, buffer: TextBuffer, cursor: Cursor, width: int) -> tuple[int, int]:
        """Screen (row, col) of the cursor, given the current scroll offset."""
        row = cursor.line - self.scroll_offset
        text = buffer.line(cursor.line)[:cursor.column]
        col = self.gutter_width(buffer) + display_width(text)
        return row, max(0, min(col, width - 1))

    # --- Frame composition ---

    def compose_frame(
        self,
        buffer: TextBuffer,
        cursor: Cursor,
        mode: Mode,
        width: int,
        height: int,
        filename: Optional[str] = None,
        modified: bool = False,
        message: Optional[str] = None,
    ) -> Frame:
        rows = self.text_rows(height)
        self.scroll_to_cursor(cursor, rows)
        gutter = self.gutter_width(buffer)
        digits = gutter - len(EditorConstants.GUTTER_SEPARATOR)

        frame: Frame = []
        for r in range(rows):
            index = self.scroll_offset + r
            if index < buffer.line_count():
                prefix = (
                    f"{index + 1:>{digits}}{EditorConstants.GUTTER_SEPARATOR}"
                    if gutter else ""
                )
                row = text_to_cells(prefix, min(gutter, width), STYLE_GUTTER)
                row += text_to_cells(buffer.line(index), width - len(row))
            else:
                row = text_to_cells(EditorConstants.EMPTY_ROW_MARKER, min(1, width), STYLE_FILLER)
                row += text_to_cells("", width - len(row))
            frame.append(row)

        if height >= 3:
            frame.append(self._status_row(buffer, cursor, mode, width, filename, modified, message))
        if height >= 2:
            frame.append(text_to_cells(EditorConstants.HELP_TEXT, width, STYLE_HELP))
        return frame[:height]

    def _status_row(self, buffer, cursor, mode, width, filename, modified, message) -> list[Cell]:
        if message:
            return text_to_cells(f" {message}", width, STYLE_STATUS)
        name = filename or EditorConstants.NO_NAME
        if modified:
            name += " [+]"
        left = (
            f" {name} - Line {cursor.line + 1}/{buffer.line_count()},"
            f" Col {cursor.column + 1} "
        )
        right = f" {mode.name} MODE "
        padding = max(1, width - display_width(left) - display_width(right))
        return text_to_cells(left + " " * padding + right, width, STYLE_STATUS)

    def compose_message_frame(self, width: int, height: int, messages: Sequence[str]) -> Frame:
        """Frame with ``messages`` centred; used when the terminal is too small."""
        frame = [text_to_cells("", width) for _ in range(height)]
        top = max(0, (height - len(messages)) // 2)
        for i, message in enumerate(messages):
            if top + i >= height:
                break
            left = max(0, (width - display_width(message)) // 2)
            frame[top + i] = text_to_cells(" " * left + message, width)
        return frame

    # --- Diffing ---

    def invalidate_frame(self) -> None:
        """Forget the last frame so the next render repaints every cell.

        Use this after a resize or when something else has drawn on the
        screen behind the renderer's back.
        """
        self._last_frame = None

    def render(
        self,
        buffer: TextBuffer,
        cursor: Cursor,
        mode: Mode,
        width: int,
        height: int,
        filename: Optional[str] = None,
        modified: bool = False,
        message: Optional[str] = None,
    ) -> list[Instruction]:
        """Compose the current frame and return the instructions to draw it."""
        frame = self.compose_frame(
            buffer, cursor, mode, width, height,
            filename=filename, modified=modified, message=message,
        )
        return self.diff_frame(frame, self.cursor_screen_position(buffer, cursor, width))

    def diff_frame(self, frame: Frame, cursor_position: tuple[int, int]) -> list[Instruction]:
        """Emit writes for cells that differ from the last frame.

        The terminal cursor is positioned last so intermediate writes never
        leave it somewhere visible but wrong.
        """
        height = len(frame)
        width = len(frame[0]) if frame else 0
        last = self._last_frame
        full = (
            last is None
            or len(last) != height
            or (len(last[0]) if last else 0) != width
        )

        out: list[Instruction] = []
        if full:
            logger.debug(f"full redraw at {width}x{height}")
            out.append(ClearScreen())

        for y, row in enumerate(frame):
            old_row = None if full else last[y]
            for start, end in self._changed_runs(row, old_row):
                out.append(MoveTo(y, start))
                out.extend(self._style_runs(row[start:end]))

        out.append(MoveTo(*cursor_position))
        self._last_frame = frame
        return out

    @staticmethod
    def _changed_runs(row: list[Cell], old_row: Optional[list[Cell]]) -> list[tuple[int, int]]:
        """Half-open column ranges of maximal runs of changed cells."""
        if old_row is None:
            return [(0, len(row))] if row else []
        runs = []
        x = 0
        while x < len(row):
            if row[x] == old_row[x]:
                x += 1
                continue
            start = x
            while x < len(row) and row[x] != old_row[x]:
                x += 1
            # A run may not start on the right half of a wide character
            while start > 0 and row[start].char == CONTINUATION:
                start -= 1
            if runs and start <= runs[-1][1]:
                runs[-1] = (runs[-1][0], x)
            else:
                runs.append((start, x))
        return runs

    @staticmethod
    def _style_runs(cells: list[Cell]) -> list[Write]:
        writes: list[Write] = []
        for cell in cells:
            if writes and writes[-1].style == cell.style:
                writes[-1] = Write(writes[-1].text + cell.char, cell.style)
            else:
                writes.append(Write(cell.char, cell.style))
        return writes
