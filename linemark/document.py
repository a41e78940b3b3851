"""Loading and saving documents as lists of lines."""

import logging
import os
import tempfile
from typing import Sequence

logger = logging.getLogger(__name__)


def split_text(content: str) -> list[str]:
    """Split file content into lines; empty content is one empty line."""
    return content.split('\n') if content else [""]


def load_lines(filename: str) -> list[str]:
    """Read ``filename`` and return its lines.

    A missing file is a new, empty document. Other errors (permissions,
    decoding) propagate.
    """
    try:
        with open(filename, 'r', encoding='utf-8') as f:
            content = f.read()
    except FileNotFoundError:
        logger.info(f"{filename} does not exist; starting a new document")
        return [""]
    logger.info(f"Loaded {filename}")
    return split_text(content)


def write_atomic(path: str, content: str) -> None:
    """Replace ``path`` with ``content`` so readers never see a partial file.

    The content goes to a temporary file in the same directory, which is
    fsynced and then renamed over the target.

    Raises:
        OSError: If the file cannot be written; the target is untouched.
    """
    dir_name = os.path.dirname(path) or '.'
    suffix = os.path.splitext(path)[1]
    with tempfile.NamedTemporaryFile(mode='w', encoding='utf-8',
                                     dir=dir_name, suffix=suffix,
                                     delete=False) as temp_file:
        temp_filename = temp_file.name
        try:
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        except OSError:
            temp_file.close()
            os.remove(temp_filename)
            raise
    try:
        os.replace(temp_filename, path)
    except OSError:
        os.remove(temp_filename)
        raise


def save_lines(filename: str, lines: Sequence[str]) -> None:
    """Write ``lines`` to ``filename`` joined by newlines.

    Raises:
        OSError: If the file cannot be written; the target is untouched.
    """
    write_atomic(filename, '\n'.join(lines))
    logger.info(f"Saved {len(lines)} lines to {filename}")
