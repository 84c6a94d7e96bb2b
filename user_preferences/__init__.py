"""Read and write user-specific application data.

Preferences are stored as JSON files in a platform-appropriate, per-user
location, optionally encrypted with a password (see `user_preferences.security`).
"""

from __future__ import annotations

from .config import Settings, load_settings
from .dirs import app_dir, get_app_dir, get_app_root, get_data_root, sanitized
from .errors import (
    ConfigError,
    DirectoryError,
    InvalidAppInfoError,
    PreferencesError,
    PreferencesIOError,
    PreferencesNotFoundError,
    SecurityError,
    SerializationError,
    UnsupportedPlatformError,
)
from .storage import (
    DEFAULT_PREFS_FILENAME,
    PREFS_FILE_EXTENSION,
    Preferences,
    PreferencesMap,
    compute_file_path,
    prefs_base_dir,
)
from .store import PreferencesStore
from .types import AppDataType, AppInfo, Cipher

__version__ = "3.0.0"

__all__ = [
    "DEFAULT_PREFS_FILENAME",
    "PREFS_FILE_EXTENSION",
    "AppDataType",
    "AppInfo",
    "Cipher",
    "ConfigError",
    "DirectoryError",
    "InvalidAppInfoError",
    "Preferences",
    "PreferencesError",
    "PreferencesIOError",
    "PreferencesMap",
    "PreferencesNotFoundError",
    "PreferencesStore",
    "SecurityError",
    "SerializationError",
    "Settings",
    "UnsupportedPlatformError",
    "app_dir",
    "compute_file_path",
    "get_app_dir",
    "get_app_root",
    "get_data_root",
    "load_settings",
    "prefs_base_dir",
    "sanitized",
]
