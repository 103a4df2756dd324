"""
A small JSON-file key-value store for state that must survive restarts:
connection flags and the recently used save paths.
"""

import json
import logging
import os
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

EVER_CONNECTED_KEY = "ever_connected"
USER_DISCONNECTED_KEY = "user_disconnected"
SAVE_PATHS_KEY = "add_torrent_save_paths"
LEGACY_SAVE_PATH_KEY = "add_torrent_save_path"

MAX_SAVE_PATHS = 30


class StateStore:
    """
    Persistent get/set/delete store backed by a single JSON file.

    Every write rewrites the file through a temporary file and an atomic rename,
    so a crash never leaves a half-written state behind.
    """

    def __init__(self, config_dir_path: Path):
        """
        Initializes the store.

        Args:
            config_dir_path: The directory where 'state.json' is kept.
        """
        self.state_path = config_dir_path / "state.json"
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.state_path.is_file():
            return {}
        try:
            with open(self.state_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            log.warning(
                f"State file '{self.state_path}' is unreadable, starting fresh: {e}"
            )
            return {}
        if not isinstance(data, dict):
            log.warning(
                f"State file '{self.state_path}' is not an object, ignoring it."
            )
            return {}
        return data

    def _save(self) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.state_path.parent, prefix=".state-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_name, self.state_path)
        except OSError as e:
            log.error(f"Failed to save state file '{self.state_path}': {e}")
            with suppress(OSError):
                os.unlink(tmp_name)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    # Connection flags

    @property
    def ever_connected(self) -> bool:
        return bool(self.get(EVER_CONNECTED_KEY, False))

    @ever_connected.setter
    def ever_connected(self, value: bool) -> None:
        self.set(EVER_CONNECTED_KEY, bool(value))

    @property
    def user_disconnected(self) -> bool:
        return bool(self.get(USER_DISCONNECTED_KEY, False))

    @user_disconnected.setter
    def user_disconnected(self, value: bool) -> None:
        self.set(USER_DISCONNECTED_KEY, bool(value))


class RecentSavePaths:
    """Most-recent-first list of unique save paths, capped at MAX_SAVE_PATHS."""

    def __init__(self, store: StateStore, limit: int = MAX_SAVE_PATHS):
        self._store = store
        self._limit = limit

    def get(self) -> list[str]:
        """Returns the recent save paths, migrating the legacy single value once."""
        paths = self._store.get(SAVE_PATHS_KEY)
        if paths is None:
            legacy = self._store.get(LEGACY_SAVE_PATH_KEY, "")
            if legacy and isinstance(legacy, str):
                paths = [legacy]
                self._store.set(SAVE_PATHS_KEY, paths)
                self._store.delete(LEGACY_SAVE_PATH_KEY)
                log.debug("Migrated legacy save path into the recent list.")
            else:
                paths = []
        if not isinstance(paths, list):
            return []
        return [p for p in paths if isinstance(p, str) and p]

    def default(self) -> str:
        """The most recently used save path, or an empty string."""
        paths = self.get()
        return paths[0] if paths else ""

    def add(self, path: str) -> None:
        """Moves ``path`` to the front, dropping duplicates and the overflow."""
        if not path or not isinstance(path, str):
            return
        trimmed = path.strip()
        if not trimmed:
            return
        paths = [p for p in self.get() if p != trimmed]
        paths.insert(0, trimmed)
        self._store.set(SAVE_PATHS_KEY, paths[: self._limit])
