"""
Persistent key-value settings store for motolap.

Stores user preferences and the persisted session/course collections in
a JSON file that survives restarts.

Settings file location:
    ~/.motolap/settings.json (see motolap.config.SETTINGS_FILE)

If the settings file is corrupt (invalid JSON), it will be deleted and
defaults will be used. A warning is logged on startup in this case.

Hosts that keep their own storage can pass any object with the same
get/set/delete interface; InMemorySettingsStore is provided for that and
for tests.
"""

import copy
import json
import logging
import os
import threading
from typing import Any, Optional

from motolap import config

logger = logging.getLogger('motolap.settings')


class InMemorySettingsStore:
    """
    Settings store kept entirely in memory.

    Keys may use dot notation for nested values, e.g. "lap_timer.kalman_enabled".
    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, initial: Optional[dict] = None):
        self._settings = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Setting key (can use dot notation for nested)
            default: Default value if setting not found

        Returns:
            Setting value or default
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return copy.deepcopy(value)

    def set(self, key: str, value: Any, save: bool = True) -> bool:
        """
        Set a setting value.

        Args:
            key: Setting key (can use dot notation for nested)
            value: Value to set
            save: Whether to persist immediately (default True)

        Returns:
            False if the value could not be persisted
        """
        keys = key.split('.')
        settings = self._settings

        # Navigate to the correct nested dict, creating as needed
        for k in keys[:-1]:
            if not isinstance(settings.get(k), dict):
                settings[k] = {}
            settings = settings[k]

        settings[keys[-1]] = copy.deepcopy(value)

        if save:
            return self._save()
        return True

    def delete(self, key: str, save: bool = True) -> bool:
        """
        Remove a setting.

        Returns:
            True if the key existed
        """
        keys = key.split('.')
        settings = self._settings
        for k in keys[:-1]:
            settings = settings.get(k)
            if not isinstance(settings, dict):
                return False

        if keys[-1] not in settings:
            return False
        del settings[keys[-1]]

        if save:
            self._save()
        return True

    def get_all(self) -> dict:
        """Get all settings as a dictionary."""
        return copy.deepcopy(self._settings)

    def reset(self):
        """Reset all settings to defaults (empty)."""
        self._settings = {}
        self._save()

    def _save(self) -> bool:
        """Nothing to persist for the in-memory store."""
        return True


class SettingsStore(InMemorySettingsStore):
    """
    Settings store backed by a JSON file.

    Settings are loaded from JSON on construction and saved when changed.
    Saves are atomic (temp file + rename) and best-effort: a failed write
    is logged and the in-memory value is kept.
    """

    def __init__(self, file_path: str = None):
        super().__init__()
        self._file_path = file_path or config.SETTINGS_FILE
        self._save_lock = threading.Lock()
        self._load()

    @property
    def file_path(self) -> str:
        return self._file_path

    def _load(self):
        """Load settings from JSON file."""
        try:
            if os.path.exists(self._file_path):
                with open(self._file_path, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    raise json.JSONDecodeError("top level is not an object", "", 0)
                self._settings = loaded
                logger.info("Settings loaded from %s", self._file_path)
            else:
                logger.debug("No settings file found, using defaults")
                self._settings = {}
        except json.JSONDecodeError as e:
            logger.warning(
                "Corrupt settings file deleted, using defaults: %s", e
            )
            self._delete_corrupt_file()
            self._settings = {}
        except OSError as e:
            logger.warning("Could not load settings: %s", e)
            self._settings = {}

    def _delete_corrupt_file(self):
        """Delete a corrupt settings file."""
        try:
            if os.path.exists(self._file_path):
                os.remove(self._file_path)
                logger.info("Removed corrupt settings file: %s", self._file_path)
        except OSError as e:
            logger.error("Failed to remove corrupt settings file: %s", e)

    def _save(self) -> bool:
        """Save settings to JSON file atomically. Returns False on failure."""
        with self._save_lock:
            temp_path = self._file_path + '.tmp'
            try:
                directory = os.path.dirname(self._file_path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                # Write to temp file first, then rename for atomic operation
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(self._settings, f, indent=2)
                os.replace(temp_path, self._file_path)
            except (OSError, TypeError, ValueError) as e:
                logger.warning("Could not save settings: %s", e)
                # Clean up temp file if it was created
                try:
                    if os.path.exists(temp_path):
                        os.remove(temp_path)
                except OSError:
                    pass
                return False
            return True
