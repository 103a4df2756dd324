"""
Storage Layer.

This package handles all data persistence: the configuration file, the
persistent state (connection flags, recent save paths) and the isolated
session cookie store.
"""

from .config_manager import ConfigManager
from .cookie_store import CookieStore
from .state_store import RecentSavePaths, StateStore

__all__ = ["ConfigManager", "CookieStore", "RecentSavePaths", "StateStore"]
