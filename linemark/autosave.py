"""Swap files: a crash-safe copy of unsaved edits next to the document.

Swap writes are best effort. Failures are logged and reported to the
caller as False; they never interrupt editing.
"""

import logging
import os
from typing import Optional

from .constants import EditorConstants
from .document import write_atomic

logger = logging.getLogger(__name__)


def get_swap_path(filename: str) -> str:
    """``dir/notes.txt`` -> ``dir/.notes.txt.swp``."""
    head, tail = os.path.split(filename)
    return os.path.join(
        head or '.',
        f"{EditorConstants.AUTOSAVE_SWAP_PREFIX}{tail}{EditorConstants.AUTOSAVE_SWAP_SUFFIX}",
    )


def write_swap_file(filename: str, content: str) -> bool:
    swap_path = get_swap_path(filename)
    try:
        write_atomic(swap_path, content)
    except OSError as e:
        logger.warning(f"Could not write swap file {swap_path}: {e}")
        return False
    logger.debug(f"Wrote swap file {swap_path}")
    return True


def delete_swap_file(filename: str) -> None:
    swap_path = get_swap_path(filename)
    try:
        os.remove(swap_path)
    except FileNotFoundError:
        return
    except OSError as e:
        # A stale swap file only triggers a recovery hint next time
        logger.warning(f"Could not delete swap file {swap_path}: {e}")


def swap_file_exists(filename: str) -> bool:
    return os.path.exists(get_swap_path(filename))


def read_swap_file(filename: str) -> Optional[str]:
    """Return the swap file's content, or None if missing or unreadable."""
    try:
        with open(get_swap_path(filename), encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.info(f"No usable swap file for {filename}: {e}")
        return None
