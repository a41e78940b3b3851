"""Tests for the editor loop: terminal lifecycle, resize, saving and loading."""

import os
import tempfile
import time
from unittest.mock import MagicMock, PropertyMock, patch

import pytest

from linemark.autosave import get_swap_path, write_swap_file
from linemark.constants import EditorConstants
from linemark.editor import EditorLoop
from linemark.keyboard import KeyEvent
from linemark.renderer import Write
from linemark.settings_persistence import SettingsPersistence

from helpers import make_editor, press

QUIT = KeyEvent.ctrl('q')
SAVE = KeyEvent.ctrl('s')


def run_with(editor, select_results, key_events, raises=None):
    """Run the loop against scripted select() results and key events.

    Returns the mocks for terminal cleanup, terminal apply, select and
    get_key_event.
    """
    with patch.object(editor.terminal, 'setup'):
        with patch.object(editor.terminal, 'cleanup') as mock_cleanup:
            with patch.object(editor.terminal, 'apply') as mock_apply:
                with patch.object(type(editor.terminal), 'width', PropertyMock(return_value=80)):
                    with patch.object(type(editor.terminal), 'height', PropertyMock(return_value=24)):
                        with patch.object(editor.terminal.term, 'cbreak', MagicMock()):
                            with patch.object(editor.keyboard, 'get_key_event') as mock_get_key_event:
                                with patch('linemark.editor.select.select') as mock_select:
                                    mock_select.side_effect = select_results
                                    mock_get_key_event.side_effect = key_events
                                    if raises is None:
                                        editor.run()
                                    else:
                                        with pytest.raises(raises):
                                            editor.run()
    return mock_cleanup, mock_apply, mock_select, mock_get_key_event


class TestRunLoop:
    def test_quit_restores_terminal(self):
        editor = EditorLoop(["abc"])
        mock_cleanup, mock_apply, _, _ = run_with(editor, [([0], [], [])], [QUIT])
        mock_cleanup.assert_called_once()
        # Initial draw only; the loop ends before redrawing
        assert mock_apply.call_count == 1
        assert editor.running is False

    def test_exception_restores_terminal_and_propagates(self):
        editor = EditorLoop(["abc"])
        mock_cleanup, _, _, _ = run_with(
            editor, [([0], [], [])], RuntimeError("boom"), raises=RuntimeError)
        mock_cleanup.assert_called_once()

    def test_terminal_write_error_propagates_after_cleanup(self):
        editor = EditorLoop(["abc"])
        with patch.object(EditorLoop, 'render', side_effect=BrokenPipeError()):
            mock_cleanup, _, _, _ = run_with(editor, [], [], raises=OSError)
        mock_cleanup.assert_called_once()

    def test_keyboard_interrupt_exits_cleanly(self):
        editor = EditorLoop(["abc"])
        mock_cleanup, _, _, _ = run_with(editor, KeyboardInterrupt(), [])
        mock_cleanup.assert_called_once()

    def test_no_polling_when_idle(self):
        editor = EditorLoop(["abc"])
        _, _, mock_select, mock_get_key_event = run_with(editor, [([0], [], [])], [QUIT])
        # Unmodified document: block without a timeout
        assert mock_select.call_args[0][3] is None
        # Keys are only read once select() reports input
        mock_get_key_event.assert_called_once_with(timeout=0)

    def test_resize_repaints_everything(self):
        editor = EditorLoop(["abc"])
        os.write(editor._resize_pipe_w, EditorConstants.RESIZE_PIPE_MARKER)
        with patch.object(editor.renderer, 'invalidate_frame',
                          wraps=editor.renderer.invalidate_frame) as mock_invalidate:
            _, mock_apply, _, _ = run_with(
                editor,
                [([editor._resize_pipe_r], [], []), ([0], [], [])],
                [QUIT],
            )
        mock_invalidate.assert_called_once()
        # Initial draw plus the repaint after the resize
        assert mock_apply.call_count == 2

    def test_resize_signal_writes_to_pipe(self):
        editor = EditorLoop(["abc"])
        editor._handle_resize(None, None)
        assert os.read(editor._resize_pipe_r, 1024) == EditorConstants.RESIZE_PIPE_MARKER

    def test_autosave_on_select_timeout(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            editor = EditorLoop(["abc"], filename=filename)
            press(editor, "x")
            editor._last_edit_time = time.monotonic() - 100
            with patch('linemark.editor.write_swap_file', return_value=True) as mock_write:
                run_with(
                    editor,
                    [([], [], []), ([0], [], []), ([0], [], [])],
                    [QUIT, QUIT],
                )
            mock_write.assert_called_once_with(filename, "bc")
            assert editor.running is False

    def test_clean_exit_removes_swap_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            write_swap_file(filename, "stale")
            editor = EditorLoop(["abc"], filename=filename)
            run_with(editor, [([0], [], [])], [QUIT])
            assert not os.path.exists(get_swap_path(filename))


class TestRender:
    def test_too_small_terminal_shows_message(self):
        editor = make_editor(["abc"], width=19, height=5)
        instructions = editor.render()
        assert editor.error_mode
        text = ''.join(i.text for i in instructions if isinstance(i, Write))
        assert EditorConstants.TERMINAL_TOO_SMALL_MESSAGE in text
        editor.terminal.apply.assert_called_once_with(instructions)

    def test_keys_ignored_while_too_small_except_quit(self):
        editor = make_editor(["abc"], width=19, height=5)
        editor.render()
        editor.running = True
        press(editor, "x")
        assert editor.export_lines() == ["abc"]
        press(editor, QUIT)
        assert editor.running is False

    def test_growing_terminal_leaves_error_mode(self):
        editor = make_editor(["abc"], width=19, height=5)
        editor.render()
        editor.terminal.width = 40
        editor.render()
        assert not editor.error_mode

    def test_status_message_is_shown_then_cleared(self):
        editor = make_editor(["abc"])
        press(editor, "u")
        assert editor.status_message == "Nothing to undo"
        press(editor, "l")
        assert editor.status_message is None

    def test_page_height(self):
        assert make_editor(height=24).page_height == 22


class TestSaveAndLoad:
    def test_save(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            with open(filename, 'w') as f:
                f.write("hello\nworld")
            editor = make_editor()
            editor.load_file(filename)
            assert editor.export_lines() == ["hello", "world"]

            press(editor, "x", SAVE)

            with open(filename) as f:
                assert f.read() == "ello\nworld"
            assert editor.status_message == f"Saved to {filename}"
            assert not editor.modified

    def test_save_removes_swap_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            write_swap_file(filename, "draft")
            editor = make_editor(["abc"], filename=filename)
            press(editor, SAVE)
            assert not os.path.exists(get_swap_path(filename))

    def test_save_error_is_reported(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "missing", "doc.txt")
            editor = make_editor(["abc"], filename=filename)
            press(editor, "x", SAVE)
            assert editor.status_message.startswith(f"Error: Cannot save to {filename}")
            assert editor.modified

    def test_save_without_filename(self):
        editor = make_editor(["abc"])
        press(editor, SAVE)
        assert editor.status_message == "No file name"

    def test_load_missing_file_starts_empty(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "new.txt")
            editor = make_editor()
            editor.load_file(filename)
            assert editor.export_lines() == [""]
            assert editor.filename == filename
            assert not editor.modified

    def test_load_resets_undo_and_mode(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            editor = make_editor(["abc"])
            press(editor, "x", "i")
            editor.load_file(filename)
            assert not editor.undo.can_undo()
            assert not editor.modes.is_insert

    def test_load_reports_swap_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            write_swap_file(filename, "draft")
            editor = make_editor()
            editor.load_file(filename)
            assert "--recover" in editor.status_message
            assert editor.export_lines() == [""]

    def test_recover_from_swap_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            write_swap_file(filename, "draft\ntext")
            editor = make_editor()
            editor.load_file(filename, recover=True)
            assert editor.export_lines() == ["draft", "text"]
            assert editor.modified
            assert editor.status_message == "Recovered from swap file"

    def test_cursor_position_is_remembered(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            with open(filename, 'w') as f:
                f.write("one\ntwo\nthree")
            persistence = SettingsPersistence(config_dir=os.path.join(tmpdir, "config"))

            editor = make_editor(persistence=persistence)
            editor.load_file(filename)
            press(editor, "j", "j", "l", "l")
            editor._on_clean_exit()

            reopened = make_editor(persistence=persistence)
            reopened.load_file(filename)
            assert reopened.cursor.position == (2, 2)

    def test_remembered_cursor_is_clamped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            with open(filename, 'w') as f:
                f.write("ab")
            persistence = SettingsPersistence(config_dir=tmpdir)
            persistence.save_settings(filename, {"cursor": [5, 9]})
            editor = make_editor(persistence=persistence)
            editor.load_file(filename)
            assert editor.cursor.position == (0, 1)


class TestAutosaveTiming:
    def test_no_timeout_when_not_modified(self):
        editor = make_editor(filename="test.txt")
        assert editor._calculate_autosave_timeout() is None

    def test_no_timeout_when_no_filename(self):
        editor = make_editor()
        press(editor, "i", "a")
        assert editor.modified
        assert editor._calculate_autosave_timeout() is None

    def test_no_timeout_when_disabled(self):
        editor = make_editor(filename="test.txt", preferences={"autosave": False})
        press(editor, "i", "a")
        assert editor._calculate_autosave_timeout() is None

    def test_debounce_timeout(self):
        editor = make_editor(filename="test.txt")
        press(editor, "i", "a")
        result = editor._calculate_autosave_timeout()
        assert result is not None
        assert 0 < result <= EditorConstants.AUTOSAVE_DEBOUNCE_SECONDS

    def test_backstop_caps_debounce(self):
        editor = make_editor(filename="test.txt")
        press(editor, "i", "a")
        now = time.monotonic()
        editor._first_unsaved_edit_time = now - EditorConstants.AUTOSAVE_BACKSTOP_SECONDS
        editor._last_edit_time = now
        assert editor._calculate_autosave_timeout() == 0.0

    def test_maybe_autosave_writes_when_due(self):
        editor = make_editor(filename="test.txt")
        press(editor, "i", "a")
        editor._last_edit_time -= 100
        with patch('linemark.editor.write_swap_file', return_value=True) as mock_write:
            assert editor._maybe_autosave() is True
            mock_write.assert_called_once_with("test.txt", "a")
        # Nothing new to save until the next edit
        assert editor._calculate_autosave_timeout() is None

    def test_maybe_autosave_reports_failure_and_retries(self):
        editor = make_editor(filename="test.txt")
        press(editor, "i", "a")
        editor._last_edit_time -= 100
        with patch('linemark.document.tempfile.NamedTemporaryFile',
                   side_effect=OSError(28, "No space left on device")):
            assert editor._maybe_autosave() is False
        assert editor.status_message == "Error: Cannot write swap file for test.txt"
        # Still pending, but the retry waits a debounce period
        timeout = editor._calculate_autosave_timeout()
        assert timeout is not None
        assert 0 < timeout <= EditorConstants.AUTOSAVE_DEBOUNCE_SECONDS

        editor._last_autosave_time -= 100
        with patch('linemark.editor.write_swap_file', return_value=True) as mock_write:
            assert editor._maybe_autosave() is True
            mock_write.assert_called_once_with("test.txt", "a")
        assert editor._calculate_autosave_timeout() is None

    def test_failed_autosave_message_is_drawn(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = os.path.join(tmpdir, "doc.txt")
            editor = EditorLoop(["abc"], filename=filename)
            press(editor, "x")
            editor._last_edit_time = time.monotonic() - 100
            shown = []
            real_render = editor.render

            def render():
                shown.append(editor.status_message)
                return real_render()

            with patch.object(editor, 'render', side_effect=render):
                with patch('linemark.editor.write_swap_file', return_value=False):
                    run_with(
                        editor,
                        [([], [], []), ([0], [], []), ([0], [], [])],
                        [QUIT, QUIT],
                    )
            # Redrawn right after the failed write, before any key
            assert shown[1] == f"Error: Cannot write swap file for {filename}"

    def test_maybe_autosave_waits_for_debounce(self):
        editor = make_editor(filename="test.txt")
        press(editor, "i", "a")
        with patch('linemark.editor.write_swap_file') as mock_write:
            assert editor._maybe_autosave() is False
            mock_write.assert_not_called()
