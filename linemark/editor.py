"""Main editor loop: read a key, run its command, redraw."""

import logging
import os
import select
import signal
import threading
import time
from typing import Any, Dict, Optional, Sequence

from .autosave import delete_swap_file, read_swap_file, swap_file_exists, write_swap_file
from .buffer import TextBuffer
from .commands import CommandProcessor, QuitCommand
from .constants import EditorConstants
from .cursor import Cursor
from .document import load_lines, save_lines, split_text
from .keyboard import KeyboardHandler, KeyEvent
from .modes import ModeState
from .renderer import Instruction, Renderer
from .settings_persistence import DEFAULT_PREFERENCES, SettingsPersistence
from .terminal import TerminalInterface, disable_flow_control, restore_tty_settings
from .undo import BufferSnapshot, UndoManager

logger = logging.getLogger(__name__)


class EditorLoop:
    """Owns the buffer, cursor and mode, and drives the edit/render cycle.

    All mutation happens in ``handle_key_event`` while holding ``lock``;
    anything that reads the buffer from elsewhere (autosave) takes the
    same lock.
    """

    def __init__(
        self,
        lines: Optional[Sequence[str]] = None,
        filename: Optional[str] = None,
        terminal: Optional[TerminalInterface] = None,
        preferences: Optional[Dict[str, Any]] = None,
        persistence: Optional[SettingsPersistence] = None,
    ):
        prefs = dict(DEFAULT_PREFERENCES)
        prefs.update(preferences or {})

        self.terminal = terminal or TerminalInterface()
        self.keyboard = KeyboardHandler(self.terminal)
        self.buffer = TextBuffer(lines)
        self.cursor = Cursor()
        self.modes = ModeState()
        self.commands = CommandProcessor()
        self.undo = UndoManager(max_entries=prefs["undo_limit"])
        self.renderer = Renderer(line_numbers=prefs["line_numbers"])
        self.tab_width: int = prefs["tab_width"]
        self.autosave_enabled: bool = prefs["autosave"]
        self.persistence = persistence
        self.lock = threading.RLock()

        self.filename = filename
        self.modified = False
        self.status_message: Optional[str] = None
        # Snapshot taken when insert mode was entered; closed by Escape
        self.insert_snapshot: Optional[BufferSnapshot] = None
        self.running = False
        self.error_mode = False  # True when the terminal is too small

        self._quit_armed = False
        self._quit_confirmed = False
        self._last_edit_time: Optional[float] = None
        self._first_unsaved_edit_time: Optional[float] = None
        self._last_autosave_time: Optional[float] = None
        # Self-pipe: the SIGWINCH handler writes here to wake up select()
        self._resize_pipe_r, self._resize_pipe_w = os.pipe()

    # --- State access ---

    @property
    def page_height(self) -> int:
        """Lines moved by Page Up / Page Down."""
        return Renderer.text_rows(self.terminal.height)

    def export_lines(self) -> list[str]:
        with self.lock:
            return self.buffer.lines()

    def snapshot_state(self) -> BufferSnapshot:
        return BufferSnapshot(
            lines=tuple(self.buffer.lines()),
            cursor_line=self.cursor.line,
            cursor_column=self.cursor.column,
        )

    def apply_snapshot(self, snapshot: BufferSnapshot) -> None:
        self.buffer.replace_all(snapshot.lines)
        self.cursor.move_to(
            self.buffer, snapshot.cursor_line, snapshot.cursor_column,
            past_end=self.modes.allows_past_end,
        )

    # --- Input ---

    def handle_key_event(self, key_event: KeyEvent) -> bool:
        """Process one key event.

        Returns:
            True if the document was modified
        """
        with self.lock:
            # Messages last until the next keypress
            self.status_message = None
            self._quit_confirmed = self._quit_armed
            self._quit_armed = False
            if self.error_mode and not self._is_quit_key(key_event):
                return False
            modified = self.commands.process(self, key_event)
            if modified:
                self._mark_modified()
            return modified

    def _is_quit_key(self, key_event: KeyEvent) -> bool:
        command = self.commands.get_command(self.modes.mode, key_event.key_type, key_event.value)
        return isinstance(command, QuitCommand)

    def _mark_modified(self) -> None:
        now = time.monotonic()
        self.modified = True
        self._last_edit_time = now
        if self._first_unsaved_edit_time is None:
            self._first_unsaved_edit_time = now

    def request_quit(self) -> None:
        """Stop the loop; with unsaved changes, only on the second request."""
        if self.modified and not self._quit_confirmed:
            self.status_message = EditorConstants.UNSAVED_CHANGES_MESSAGE
            self._quit_armed = True
            return
        self.running = False

    # --- Files ---

    def load_file(self, filename: str, recover: bool = False) -> None:
        """Load ``filename`` into the buffer, or its swap file if ``recover``.

        Read errors other than a missing file propagate.
        """
        lines = load_lines(filename)
        modified = False
        if recover:
            content = read_swap_file(filename)
            if content is None:
                self.status_message = "No swap file to recover"
            else:
                lines = split_text(content)
                modified = True
                self.status_message = "Recovered from swap file"
        elif swap_file_exists(filename):
            self.status_message = "Swap file found; start with --recover to restore it"

        with self.lock:
            self.filename = filename
            self.buffer.replace_all(lines)
            self.undo.clear()
            self.modes = ModeState()
            self.cursor = Cursor()
            self.modified = modified
            if modified:
                self._mark_modified()
            self._restore_cursor()

    def _restore_cursor(self) -> None:
        if self.persistence is None:
            return
        settings = self.persistence.load_settings(self.filename)
        position = settings.get("cursor")
        if self.persistence.validate_setting("cursor", position) and position is not None:
            line, column = position
            self.cursor.move_to(self.buffer, line, column, past_end=False)

    def _remember_cursor(self) -> None:
        if self.persistence is None or self.filename is None:
            return
        settings = self.persistence.load_settings(self.filename)
        settings["cursor"] = [self.cursor.line, self.cursor.column]
        self.persistence.save_settings(self.filename, settings)

    def save_file(self, filename: str) -> bool:
        """Save the document to ``filename``.

        Returns:
            True if save succeeded; on failure the reason is in status_message
        """
        with self.lock:
            lines = self.buffer.lines()
        try:
            save_lines(filename, lines)
        except OSError as e:
            logger.warning(f"Saving {filename} failed: {e}")
            reason = e.strerror or str(e)
            self.status_message = f"Error: Cannot save to {filename}: {reason}"
            return False
        self.filename = filename
        self.modified = False
        self._first_unsaved_edit_time = None
        delete_swap_file(filename)
        return True

    def handle_save(self) -> None:
        """Handle the save command."""
        if not self.filename:
            self.status_message = "No file name"
            return
        if self.save_file(self.filename):
            self.status_message = f"Saved to {self.filename}"

    # --- Autosave ---

    def _calculate_autosave_timeout(self) -> Optional[float]:
        """Seconds until the swap file is due, or None if nothing to save."""
        if not (self.autosave_enabled and self.modified and self.filename):
            return None
        if self._last_edit_time is None or self._first_unsaved_edit_time is None:
            return None
        now = time.monotonic()
        debounce_at = self._last_edit_time + EditorConstants.AUTOSAVE_DEBOUNCE_SECONDS
        backstop_at = self._first_unsaved_edit_time + EditorConstants.AUTOSAVE_BACKSTOP_SECONDS
        due = min(debounce_at, backstop_at)
        if self._last_autosave_time is not None and self._last_autosave_time >= self._last_edit_time:
            # Previous attempt failed with no edit since; wait before retrying
            due = max(due, self._last_autosave_time + EditorConstants.AUTOSAVE_DEBOUNCE_SECONDS)
        return max(0.0, due - now)

    def _maybe_autosave(self) -> bool:
        """Write the swap file if it is due.

        A failed write is reported in the status bar and retried later.

        Returns:
            True if a swap file was written
        """
        timeout = self._calculate_autosave_timeout()
        if timeout is None or timeout > 0:
            return False
        with self.lock:
            content = self.buffer.to_text()
        self._last_autosave_time = time.monotonic()
        if not write_swap_file(self.filename, content):
            self.status_message = f"Error: Cannot write swap file for {self.filename}"
            return False
        self._first_unsaved_edit_time = None
        return True

    # --- Drawing ---

    def render(self) -> list[Instruction]:
        """Draw the current state; returns the instructions written."""
        width, height = self.terminal.width, self.terminal.height
        with self.lock:
            if width < EditorConstants.MIN_TERMINAL_WIDTH or height < EditorConstants.MIN_TERMINAL_HEIGHT:
                self.error_mode = True
                frame = self.renderer.compose_message_frame(width, height, [
                    EditorConstants.TERMINAL_TOO_SMALL_MESSAGE,
                    EditorConstants.CURRENT_SIZE_MESSAGE.format(
                        EditorConstants.MIN_TERMINAL_WIDTH, EditorConstants.MIN_TERMINAL_HEIGHT,
                        width, height),
                ])
                instructions = self.renderer.diff_frame(frame, (0, 0))
            else:
                self.error_mode = False
                instructions = self.renderer.render(
                    self.buffer, self.cursor, self.modes.mode, width, height,
                    filename=os.path.basename(self.filename) if self.filename else None,
                    modified=self.modified,
                    message=self.status_message,
                )
        self.terminal.apply(instructions)
        return instructions

    # --- Main loop ---

    def _handle_resize(self, signum, frame):
        """Handle terminal resize signal."""
        del signum, frame  # Unused
        # Write to pipe to wake up select()
        os.write(self._resize_pipe_w, EditorConstants.RESIZE_PIPE_MARKER)

    def run(self):
        """Run the main editor loop until quit.

        The terminal is restored on every exit path; any error other than
        Ctrl-C propagates after that.
        """
        self.running = True
        old_settings = None
        original_winch_handler = signal.signal(signal.SIGWINCH, self._handle_resize)
        try:
            self.terminal.setup()
            with self.terminal.term.cbreak():
                old_settings = disable_flow_control()
                need_draw = True
                while self.running:
                    if need_draw:
                        self.render()
                        need_draw = False

                    # Wait for input, a resize, or the autosave deadline
                    timeout = self._calculate_autosave_timeout()
                    ready, _, _ = select.select([0, self._resize_pipe_r], [], [], timeout)

                    if not ready:
                        self._maybe_autosave()
                        # A failed write leaves a message to show
                        need_draw = True
                        continue
                    if self._resize_pipe_r in ready:
                        os.read(self._resize_pipe_r, 1024)
                        self.renderer.invalidate_frame()
                        need_draw = True
                    if 0 in ready:
                        key_event = self.keyboard.get_key_event(timeout=0)
                        if key_event:
                            self.handle_key_event(key_event)
                            need_draw = True
            self._on_clean_exit()
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            restore_tty_settings(old_settings)
            signal.signal(signal.SIGWINCH, original_winch_handler)
            os.close(self._resize_pipe_r)
            os.close(self._resize_pipe_w)
            self.terminal.cleanup()

    def _on_clean_exit(self) -> None:
        if self.filename:
            delete_swap_file(self.filename)
        self._remember_cursor()
