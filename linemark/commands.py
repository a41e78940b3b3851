"""Command pattern implementation for editor actions.

Key events are looked up in an explicit ``(mode, key type, value)`` table;
each entry maps to exactly one command. Commands act on the editor that
owns the buffer, cursor and mode state.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, TYPE_CHECKING

from .errors import Empty, EditorError
from .keyboard import KeyType
from .modes import Mode
from .undo import UndoEntry

if TYPE_CHECKING:
    from .editor import EditorLoop
    from .keyboard import KeyEvent

logger = logging.getLogger(__name__)

CommandKey = Tuple[Mode, KeyType, str]


class EditorCommand(ABC):
    """Base class for editor commands."""

    @abstractmethod
    def execute(self, editor: 'EditorLoop', key_event: 'KeyEvent') -> bool:
        """Execute the command.

        Args:
            editor: Editor instance
            key_event: The key event that triggered this command

        Returns:
            True if the command modified the document
        """
        pass


# --- Movement ---

class MovementCommand(EditorCommand):
    """Base class for cursor movement commands."""

    def execute(self, editor: 'EditorLoop', key_event: 'KeyEvent') -> bool:
        """Movement commands don't modify the document."""
        self._move(editor, editor.modes.allows_past_end)
        return False

    @abstractmethod
    def _move(self, editor: 'EditorLoop', past_end: bool):
        """Perform the movement."""
        pass


class LeftCharCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_left()


class RightCharCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_right(editor.buffer, past_end)


class UpLineCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_up(editor.buffer, past_end)


class DownLineCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_down(editor.buffer, past_end)


class BeginningOfLineCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_line_start()


class EndOfLineCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_line_end(editor.buffer, past_end)


class FirstLineCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_to(editor.buffer, 0, 0, past_end)


class LastLineCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_to(editor.buffer, editor.buffer.line_count() - 1, 0, past_end)


class PageDownCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_lines(editor.buffer, editor.page_height, past_end)


class PageUpCommand(MovementCommand):
    def _move(self, editor, past_end):
        editor.cursor.move_lines(editor.buffer, -editor.page_height, past_end)


# --- Editing ---

class EditCommand(EditorCommand):
    """Base class for editing commands.

    In normal mode every edit is its own undo step. In insert mode the
    whole session is recorded when it ends, so no snapshot is taken here.
    """

    def execute(self, editor: 'EditorLoop', key_event: 'KeyEvent') -> bool:
        if editor.modes.is_insert:
            self._edit(editor, key_event)
            return True
        before = editor.snapshot_state()
        self._edit(editor, key_event)
        editor.undo.push(UndoEntry(before=before, after=editor.snapshot_state()))
        return True

    @abstractmethod
    def _edit(self, editor: 'EditorLoop', key_event: 'KeyEvent'):
        """Perform the edit. Raise Empty if there is nothing to do."""
        pass


class InsertTextCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        inserted = False
        for ch in key_event.value:
            # Filter out control characters
            if ord(ch) < 32 or ch == '\x7f':
                continue
            cursor.column = buffer.insert_char(cursor.line, cursor.column, ch)
            inserted = True
        if not inserted:
            raise Empty("no printable characters in key event")
        cursor.desired_column = cursor.column


class InsertTabCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        for _ in range(editor.tab_width):
            cursor.column = buffer.insert_char(cursor.line, cursor.column, ' ')
        cursor.desired_column = cursor.column


class InsertNewlineCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        new_line = buffer.split_line(cursor.line, cursor.column)
        cursor.move_to(buffer, new_line, 0)


class BackspaceCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        if cursor.column == 0:
            join_col = buffer.join_with_previous(cursor.line)
            cursor.move_to(buffer, cursor.line - 1, join_col)
        else:
            buffer.delete_char(cursor.line, cursor.column - 1)
            cursor.move_to(buffer, cursor.line, cursor.column - 1)


class DeleteForwardCommand(EditCommand):
    """Delete under the cursor; at line end (insert mode) pull up the next line."""

    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        if cursor.column == buffer.line_length(cursor.line) and editor.modes.is_insert:
            buffer.join_with_next(cursor.line)
        else:
            buffer.delete_char(cursor.line, cursor.column)


class DeleteCharBeforeCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        if cursor.column == 0:
            raise Empty("nothing before the cursor")
        buffer.delete_char(cursor.line, cursor.column - 1)
        cursor.move_to(buffer, cursor.line, cursor.column - 1, past_end=False)


class JoinLinesCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        join_col = buffer.join_with_next(cursor.line)
        cursor.move_to(buffer, cursor.line, join_col, past_end=False)


class DeleteLineCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        if buffer.line_count() == 1 and buffer.line_length(0) == 0:
            raise Empty("document is already empty")
        buffer.remove_line(cursor.line)
        cursor.move_to(buffer, cursor.line, 0, past_end=False)


class DeleteToEndOfLineCommand(EditCommand):
    def _edit(self, editor, key_event):
        buffer, cursor = editor.buffer, editor.cursor
        if not buffer.truncate_line(cursor.line, cursor.column):
            raise Empty("nothing after the cursor")
        cursor.clamp_to_buffer(buffer, past_end=False)
        cursor.desired_column = cursor.column


# --- Mode changes ---

class InsertSessionCommand(EditorCommand):
    """Base class for commands that enter insert mode.

    The snapshot taken here becomes the "before" side of the undo step
    recorded when the session ends, so e.g. ``o`` + typing + Escape undoes
    in one go.
    """

    def execute(self, editor: 'EditorLoop', key_event: 'KeyEvent') -> bool:
        editor.insert_snapshot = editor.snapshot_state()
        editor.modes.enter_insert()
        return self._prepare(editor)

    @abstractmethod
    def _prepare(self, editor: 'EditorLoop') -> bool:
        """Position the cursor (and maybe open a line). Return True if modified."""
        pass


class InsertCommand(InsertSessionCommand):
    def _prepare(self, editor):
        return False


class AppendCommand(InsertSessionCommand):
    def _prepare(self, editor):
        editor.cursor.move_right(editor.buffer, past_end=True)
        return False


class InsertAtLineStartCommand(InsertSessionCommand):
    def _prepare(self, editor):
        editor.cursor.move_line_start()
        return False


class AppendAtLineEndCommand(InsertSessionCommand):
    def _prepare(self, editor):
        editor.cursor.move_line_end(editor.buffer, past_end=True)
        return False


class OpenLineBelowCommand(InsertSessionCommand):
    def _prepare(self, editor):
        line = editor.cursor.line + 1
        editor.buffer.insert_line(line, "")
        editor.cursor.move_to(editor.buffer, line, 0)
        return True


class OpenLineAboveCommand(InsertSessionCommand):
    def _prepare(self, editor):
        line = editor.cursor.line
        editor.buffer.insert_line(line, "")
        editor.cursor.move_to(editor.buffer, line, 0)
        return True


class EscapeCommand(EditorCommand):
    """Leave insert mode and record the session as one undo step."""

    def execute(self, editor: 'EditorLoop', key_event: 'KeyEvent') -> bool:
        editor.modes.enter_normal(editor.buffer, editor.cursor)
        before = editor.insert_snapshot
        editor.insert_snapshot = None
        if before is not None:
            editor.undo.push(UndoEntry(before=before, after=editor.snapshot_state()))
        return False


# --- System ---

class SystemCommand(EditorCommand):
    """Base class for system commands like save, quit, undo."""

    def execute(self, editor: 'EditorLoop', key_event: 'KeyEvent') -> bool:
        return bool(self._execute_system(editor, key_event))

    @abstractmethod
    def _execute_system(self, editor: 'EditorLoop', key_event: 'KeyEvent'):
        """Perform the system action. Return True if the document changed."""
        pass


class UndoCommand(SystemCommand):
    def _execute_system(self, editor, key_event):
        snapshot = editor.undo.undo()
        if snapshot is None:
            editor.status_message = "Nothing to undo"
            return False
        editor.apply_snapshot(snapshot)
        editor.status_message = "Undone"
        return True


class RedoCommand(SystemCommand):
    def _execute_system(self, editor, key_event):
        snapshot = editor.undo.redo()
        if snapshot is None:
            editor.status_message = "Nothing to redo"
            return False
        editor.apply_snapshot(snapshot)
        editor.status_message = "Redone"
        return True


class SaveCommand(SystemCommand):
    def _execute_system(self, editor, key_event):
        editor.handle_save()


class QuitCommand(SystemCommand):
    def _execute_system(self, editor, key_event):
        editor.request_quit()


class CommandProcessor:
    """Maps ``(mode, key)`` pairs to commands and runs them."""

    def __init__(self):
        self._commands: Dict[CommandKey, EditorCommand] = {}
        self._prefixes: set[Tuple[Mode, str]] = set()
        self._insert_text = InsertTextCommand()
        # First half of a two-key normal mode command ('d' of 'dd')
        self.pending: Optional[str] = None
        self._setup_default_commands()

    def _setup_default_commands(self):
        """Set up the default command mappings."""
        normal, insert = Mode.NORMAL, Mode.INSERT

        for mode in (normal, insert):
            # Movement commands
            self.register(mode, (KeyType.SPECIAL, 'left'), LeftCharCommand())
            self.register(mode, (KeyType.SPECIAL, 'right'), RightCharCommand())
            self.register(mode, (KeyType.SPECIAL, 'up'), UpLineCommand())
            self.register(mode, (KeyType.SPECIAL, 'down'), DownLineCommand())
            self.register(mode, (KeyType.SPECIAL, 'home'), BeginningOfLineCommand())
            self.register(mode, (KeyType.SPECIAL, 'end'), EndOfLineCommand())
            self.register(mode, (KeyType.SPECIAL, 'page_up'), PageUpCommand())
            self.register(mode, (KeyType.SPECIAL, 'page_down'), PageDownCommand())
            self.register(mode, (KeyType.SPECIAL, 'delete'), DeleteForwardCommand())
            # System commands
            self.register(mode, (KeyType.CTRL, 's'), SaveCommand())
            self.register(mode, (KeyType.CTRL, 'q'), QuitCommand())

        # Normal mode: vi keys
        self.register(normal, (KeyType.REGULAR, 'h'), LeftCharCommand())
        self.register(normal, (KeyType.REGULAR, 'j'), DownLineCommand())
        self.register(normal, (KeyType.REGULAR, 'k'), UpLineCommand())
        self.register(normal, (KeyType.REGULAR, 'l'), RightCharCommand())
        self.register(normal, (KeyType.REGULAR, '0'), BeginningOfLineCommand())
        self.register(normal, (KeyType.REGULAR, '$'), EndOfLineCommand())
        self.register(normal, (KeyType.REGULAR, 'gg'), FirstLineCommand())
        self.register(normal, (KeyType.REGULAR, 'G'), LastLineCommand())
        self.register(normal, (KeyType.REGULAR, 'i'), InsertCommand())
        self.register(normal, (KeyType.REGULAR, 'a'), AppendCommand())
        self.register(normal, (KeyType.REGULAR, 'I'), InsertAtLineStartCommand())
        self.register(normal, (KeyType.REGULAR, 'A'), AppendAtLineEndCommand())
        self.register(normal, (KeyType.REGULAR, 'o'), OpenLineBelowCommand())
        self.register(normal, (KeyType.REGULAR, 'O'), OpenLineAboveCommand())
        self.register(normal, (KeyType.REGULAR, 'x'), DeleteForwardCommand())
        self.register(normal, (KeyType.REGULAR, 'X'), DeleteCharBeforeCommand())
        self.register(normal, (KeyType.REGULAR, 'J'), JoinLinesCommand())
        self.register(normal, (KeyType.REGULAR, 'dd'), DeleteLineCommand())
        self.register(normal, (KeyType.REGULAR, 'D'), DeleteToEndOfLineCommand())
        self.register(normal, (KeyType.REGULAR, 'u'), UndoCommand())
        self.register(normal, (KeyType.CTRL, 'r'), RedoCommand())

        # Normal mode: backspace and enter only move
        self.register(normal, (KeyType.SPECIAL, 'backspace'), LeftCharCommand())
        self.register(normal, (KeyType.SPECIAL, 'enter'), DownLineCommand())

        # Insert mode
        self.register(insert, (KeyType.SPECIAL, 'escape'), EscapeCommand())
        self.register(insert, (KeyType.SPECIAL, 'enter'), InsertNewlineCommand())
        self.register(insert, (KeyType.SPECIAL, 'backspace'), BackspaceCommand())
        self.register(insert, (KeyType.SPECIAL, 'tab'), InsertTabCommand())

    def register(self, mode: Mode, key: Tuple[KeyType, str], command: EditorCommand):
        """Register a command for a key combination in one mode."""
        key_type, value = key
        self._commands[(mode, key_type, value)] = command
        if key_type == KeyType.REGULAR and len(value) > 1:
            self._prefixes.add((mode, value[:-1]))

    def get_command(self, mode: Mode, key_type: KeyType, value: str) -> Optional[EditorCommand]:
        """Get the command for a key combination."""
        return self._commands.get((mode, key_type, value))

    def _is_prefix(self, mode: Mode, key_event: 'KeyEvent') -> bool:
        if key_event.key_type != KeyType.REGULAR:
            return False
        return (mode, key_event.value) in self._prefixes

    def _resolve(self, mode: Mode, key_event: 'KeyEvent') -> Optional[EditorCommand]:
        if self.pending is not None:
            prefix, self.pending = self.pending, None
            if key_event.key_type != KeyType.REGULAR:
                return None
            return self.get_command(mode, KeyType.REGULAR, prefix + key_event.value)

        command = self.get_command(mode, key_event.key_type, key_event.value)
        if command is None and self._is_prefix(mode, key_event):
            self.pending = key_event.value
            return None
        if command is None and mode is Mode.INSERT and key_event.key_type == KeyType.REGULAR:
            return self._insert_text
        return command

    def process(self, editor: 'EditorLoop', key_event: 'KeyEvent') -> bool:
        """Execute the command for the given key event.

        Unknown keys are no-ops. Buffer errors leave the document as it
        was and are otherwise ignored. The cursor is clamped afterwards so
        it never points past the buffer.

        Returns:
            True if the document was modified
        """
        mode = editor.modes.mode
        command = self._resolve(mode, key_event)
        modified = False
        if command is not None:
            try:
                modified = command.execute(editor, key_event)
            except EditorError as e:
                logger.debug(f"{type(command).__name__} ignored: {type(e).__name__}: {e}")
        editor.cursor.clamp_to_buffer(editor.buffer, past_end=editor.modes.allows_past_end)
        return modified
