"""Persistent editor preferences and per-document state.

Preferences apply to every document; per-document settings (such as the
last cursor position) are indexed by the document's absolute path. Both
are JSON files in the OS-appropriate config directory.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from .constants import EditorConstants

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "tab_width": EditorConstants.TAB_WIDTH,
    "line_numbers": True,
    "undo_limit": EditorConstants.UNDO_LIMIT,
    "autosave": True,
}


class SettingsPersistence:
    """Manages persistent storage of preferences and per-document settings."""

    def __init__(self, config_dir: Optional[Path] = None):
        self._config_dir = Path(config_dir or platformdirs.user_config_dir("linemark"))
        self._settings_file = self._config_dir / "settings.json"
        self._preferences_file = self._config_dir / "preferences.json"
        self._settings_cache: Optional[Dict[str, Dict[str, Any]]] = None

    def _ensure_config_dir(self) -> None:
        try:
            self._config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create config directory {self._config_dir}: {e}")

    def _read_json(self, path: Path) -> Dict[str, Any]:
        """Read a JSON object from ``path``; anything unusable reads as {}."""
        if not path.exists():
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load settings from {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"{path} has invalid format (not a dict), ignoring")
            return {}
        return data

    def _write_json(self, path: Path, data: Dict[str, Any]) -> bool:
        """Write ``data`` to ``path`` atomically (temp file + rename)."""
        self._ensure_config_dir()
        temp_file = path.with_suffix('.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            temp_file.replace(path)
            return True
        except OSError as e:
            logger.warning(f"Could not save settings to {path}: {e}")
            try:
                if temp_file.exists():
                    temp_file.unlink()
            except OSError:
                pass
            return False

    # --- Preferences ---

    def load_preferences(self) -> Dict[str, Any]:
        """Load global preferences merged over the defaults.

        Invalid values are dropped (with a warning) in favour of the default.
        """
        prefs = dict(DEFAULT_PREFERENCES)
        for key, value in self._read_json(self._preferences_file).items():
            if self.validate_setting(key, value):
                prefs[key] = value
            else:
                logger.warning(f"Ignoring invalid preference {key}={value!r}")
        return prefs

    def save_preferences(self, preferences: Dict[str, Any]) -> bool:
        return self._write_json(self._preferences_file, preferences)

    # --- Per-document settings ---

    def _load_all_settings(self) -> Dict[str, Dict[str, Any]]:
        if self._settings_cache is None:
            self._settings_cache = self._read_json(self._settings_file)
        return self._settings_cache

    def load_settings(self, document_path: Optional[str]) -> Dict[str, Any]:
        """Load settings for a specific document.

        Returns:
            Settings for the document; empty if none exist or
            document_path is None.
        """
        if document_path is None:
            return {}
        abs_path = os.path.abspath(document_path)
        doc_settings = self._load_all_settings().get(abs_path, {})
        if not isinstance(doc_settings, dict):
            logger.warning(f"Settings for {abs_path} are not a dict, ignoring")
            return {}
        return doc_settings.copy()

    def save_settings(self, document_path: Optional[str], settings: Dict[str, Any]) -> bool:
        """Save settings for a specific document.

        Returns:
            True if save was successful, False otherwise.
        """
        if document_path is None:
            return False
        abs_path = os.path.abspath(document_path)
        all_settings = dict(self._load_all_settings())
        all_settings[abs_path] = settings
        if not self._write_json(self._settings_file, all_settings):
            return False
        self._settings_cache = all_settings
        return True

    def validate_setting(self, key: str, value: Any) -> bool:
        """Check a preference or document setting value.

        Unknown keys are accepted for forward compatibility.
        """
        if key in ('tab_width',):
            return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 16
        if key in ('undo_limit',):
            return isinstance(value, int) and not isinstance(value, bool) and value >= 1
        if key in ('line_numbers', 'autosave'):
            return isinstance(value, bool)
        if key == 'cursor':
            return (
                isinstance(value, list) and len(value) == 2
                and all(isinstance(v, int) and not isinstance(v, bool) and v >= 0 for v in value)
            )
        return True

    def clear_cache(self) -> None:
        """Clear the in-memory cache of settings."""
        self._settings_cache = None


# Global instance
_persistence: Optional[SettingsPersistence] = None


def get_persistence() -> SettingsPersistence:
    """Get the global settings persistence instance."""
    global _persistence
    if _persistence is None:
        _persistence = SettingsPersistence()
    return _persistence
