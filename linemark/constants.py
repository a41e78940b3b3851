"""Constants and configuration defaults for the linemark editor."""

class EditorConstants:
    """Central configuration constants for the editor."""

    # Editing
    TAB_WIDTH = 4  # Spaces inserted for Tab in insert mode
    UNDO_LIMIT = 500  # Maximum number of undo steps kept

    # Terminal requirements
    MIN_TERMINAL_WIDTH = 20  # Minimum columns needed to draw the editor
    MIN_TERMINAL_HEIGHT = 3  # One text row plus status bar and help line

    # Screen layout
    GUTTER_SEPARATOR = " │ "  # Between line number and text
    EMPTY_ROW_MARKER = "~"  # Shown for rows past the end of the buffer
    NO_NAME = "[No Name]"
    HELP_TEXT = " CTRL-Q: Quit | i: Insert Mode | ESC: Normal Mode"

    # Autosave timing (seconds)
    AUTOSAVE_DEBOUNCE_SECONDS = 2.0  # Quiet period after last edit
    AUTOSAVE_BACKSTOP_SECONDS = 30.0  # Upper bound while edits keep coming

    # Swap files
    AUTOSAVE_SWAP_PREFIX = "."
    AUTOSAVE_SWAP_SUFFIX = ".swp"

    # Resize handling
    RESIZE_PIPE_MARKER = b'R'  # Byte written to pipe to signal resize

    # Status messages
    TERMINAL_TOO_SMALL_MESSAGE = "Terminal too small!"
    CURRENT_SIZE_MESSAGE = "Need {}x{}, have {}x{}."
    UNSAVED_CHANGES_MESSAGE = "Unsaved changes! Press Ctrl-Q again to quit."
