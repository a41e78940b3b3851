"""Unit tests for settings persistence."""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from linemark.constants import EditorConstants
from linemark.settings_persistence import DEFAULT_PREFERENCES, SettingsPersistence, get_persistence


class TestSettingsPersistence(unittest.TestCase):
    """Test settings persistence functionality."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.persistence = SettingsPersistence(config_dir=Path(self.temp_dir))
        self.test_doc_path = os.path.join(self.temp_dir, "test_document.txt")

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_save_and_load_settings(self):
        settings = {"cursor": [3, 4]}
        self.assertTrue(self.persistence.save_settings(self.test_doc_path, settings))
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), settings)

    def test_settings_survive_a_new_instance(self):
        self.persistence.save_settings(self.test_doc_path, {"cursor": [1, 2]})
        fresh = SettingsPersistence(config_dir=Path(self.temp_dir))
        self.assertEqual(fresh.load_settings(self.test_doc_path), {"cursor": [1, 2]})

    def test_settings_are_keyed_by_absolute_path(self):
        cwd = os.getcwd()
        try:
            os.chdir(self.temp_dir)
            self.persistence.save_settings("test_document.txt", {"cursor": [0, 1]})
        finally:
            os.chdir(cwd)
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {"cursor": [0, 1]})

    def test_load_nonexistent_document(self):
        self.assertEqual(self.persistence.load_settings("/nonexistent/document.txt"), {})

    def test_none_document_path(self):
        self.assertFalse(self.persistence.save_settings(None, {"cursor": [0, 0]}))
        self.assertEqual(self.persistence.load_settings(None), {})

    def test_multiple_documents(self):
        doc1_path = os.path.join(self.temp_dir, "doc1.txt")
        doc2_path = os.path.join(self.temp_dir, "doc2.txt")
        self.persistence.save_settings(doc1_path, {"cursor": [1, 1]})
        self.persistence.save_settings(doc2_path, {"cursor": [2, 2]})
        self.assertEqual(self.persistence.load_settings(doc1_path), {"cursor": [1, 1]})
        self.assertEqual(self.persistence.load_settings(doc2_path), {"cursor": [2, 2]})

    def test_corrupted_settings_file(self):
        with open(os.path.join(self.temp_dir, "settings.json"), 'w') as f:
            f.write("{ invalid json")
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {})

    def test_non_dict_settings_file(self):
        with open(os.path.join(self.temp_dir, "settings.json"), 'w') as f:
            json.dump(["not", "a", "dict"], f)
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {})

    def test_clear_cache(self):
        self.persistence.save_settings(self.test_doc_path, {"cursor": [0, 0]})
        with open(os.path.join(self.temp_dir, "settings.json"), 'w') as f:
            json.dump({}, f)
        # Cached copy still answers until the cache is cleared
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {"cursor": [0, 0]})
        self.persistence.clear_cache()
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {})

    def test_creates_config_directory(self):
        nested = Path(self.temp_dir) / "a" / "b"
        persistence = SettingsPersistence(config_dir=nested)
        self.assertTrue(persistence.save_settings(self.test_doc_path, {"cursor": [0, 0]}))
        self.assertTrue((nested / "settings.json").exists())


class TestPreferences(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.persistence = SettingsPersistence(config_dir=Path(self.temp_dir))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_defaults_without_file(self):
        prefs = self.persistence.load_preferences()
        self.assertEqual(prefs, DEFAULT_PREFERENCES)
        self.assertEqual(prefs["tab_width"], EditorConstants.TAB_WIDTH)

    def test_saved_preferences_override_defaults(self):
        self.persistence.save_preferences({"tab_width": 8, "line_numbers": False})
        prefs = self.persistence.load_preferences()
        self.assertEqual(prefs["tab_width"], 8)
        self.assertFalse(prefs["line_numbers"])
        self.assertEqual(prefs["undo_limit"], EditorConstants.UNDO_LIMIT)

    def test_invalid_preferences_fall_back_to_defaults(self):
        self.persistence.save_preferences({"tab_width": 0, "autosave": "yes"})
        with self.assertLogs('linemark.settings_persistence', level='WARNING'):
            prefs = self.persistence.load_preferences()
        self.assertEqual(prefs["tab_width"], EditorConstants.TAB_WIDTH)
        self.assertTrue(prefs["autosave"])


class TestValidateSetting(unittest.TestCase):
    def setUp(self):
        self.persistence = SettingsPersistence(config_dir=Path(tempfile.gettempdir()))

    def test_tab_width(self):
        self.assertTrue(self.persistence.validate_setting("tab_width", 4))
        self.assertFalse(self.persistence.validate_setting("tab_width", 0))
        self.assertFalse(self.persistence.validate_setting("tab_width", 17))
        self.assertFalse(self.persistence.validate_setting("tab_width", True))
        self.assertFalse(self.persistence.validate_setting("tab_width", "4"))

    def test_undo_limit(self):
        self.assertTrue(self.persistence.validate_setting("undo_limit", 1))
        self.assertFalse(self.persistence.validate_setting("undo_limit", 0))

    def test_booleans(self):
        self.assertTrue(self.persistence.validate_setting("line_numbers", False))
        self.assertFalse(self.persistence.validate_setting("autosave", 1))

    def test_cursor(self):
        self.assertTrue(self.persistence.validate_setting("cursor", [0, 5]))
        self.assertFalse(self.persistence.validate_setting("cursor", [0]))
        self.assertFalse(self.persistence.validate_setting("cursor", [-1, 0]))
        self.assertFalse(self.persistence.validate_setting("cursor", None))

    def test_unknown_keys_are_accepted(self):
        self.assertTrue(self.persistence.validate_setting("future_option", "x"))


class TestGlobalInstance(unittest.TestCase):
    def test_get_persistence_returns_singleton(self):
        self.assertIs(get_persistence(), get_persistence())


if __name__ == '__main__':
    unittest.main()
