from dataclasses import dataclass
from typing import Optional

from .constants import EditorConstants


@dataclass(frozen=True)
class BufferSnapshot:
    lines: tuple[str, ...]
    cursor_line: int = 0
    cursor_column: int = 0


@dataclass
class UndoEntry:
    before: BufferSnapshot
    after: BufferSnapshot


class UndoManager:
    """Linear undo/redo history; a new edit discards the redo branch."""

    def __init__(self, max_entries: int = EditorConstants.UNDO_LIMIT):
        self._undo_stack: list[UndoEntry] = []
        self._redo_stack: list[UndoEntry] = []
        self._max_entries = max_entries

    def clear(self):
        self._undo_stack.clear()
        self._redo_stack.clear()

    def push(self, entry: UndoEntry) -> bool:
        """Record an edit. Entries that changed nothing are dropped.

        Returns:
            True if the entry was recorded
        """
        if entry.before.lines == entry.after.lines:
            return False
        self._undo_stack.append(entry)
        # Cap history
        if len(self._undo_stack) > self._max_entries:
            self._undo_stack.pop(0)
        self._redo_stack.clear()
        return True

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def undo(self) -> Optional[BufferSnapshot]:
        """Pop the last edit and return the state to restore."""
        if not self._undo_stack:
            return None
        entry = self._undo_stack.pop()
        self._redo_stack.append(entry)
        return entry.before

    def redo(self) -> Optional[BufferSnapshot]:
        if not self._redo_stack:
            return None
        entry = self._redo_stack.pop()
        self._undo_stack.append(entry)
        return entry.after
