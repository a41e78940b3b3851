from __future__ import annotations

import importlib.metadata
from typing import Optional

__version__ = "0.1.0"


def _installed_version() -> Optional[str]:
    try:
        return importlib.metadata.version("linemark")
    except importlib.metadata.PackageNotFoundError:
        return None


def get_version_string() -> str:
    # Installed metadata wins; a source checkout falls back to __version__
    return f"linemark {_installed_version() or __version__}"
