from __future__ import annotations

from pathlib import Path


class PreferencesError(Exception):
    """Base exception for this project."""


class DirectoryError(PreferencesError):
    """Raised when a platform data directory cannot be determined."""


class InvalidAppInfoError(DirectoryError):
    """Raised when an AppInfo has an empty name or author."""


class UnsupportedPlatformError(DirectoryError):
    """Raised when no data root exists for the requested data type."""


class PreferencesIOError(PreferencesError):
    """Raised when reading or writing a preferences file fails."""

    def __init__(self, message: str, *, path: str | Path | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = str(path) if path is not None else None


class PreferencesNotFoundError(PreferencesIOError):
    """Raised when no preferences were saved under the requested key."""


class SerializationError(PreferencesError):
    """Raised when a value cannot be encoded to, or decoded from, JSON."""


class SecurityError(PreferencesError):
    """Raised when encryption or decryption fails (wrong password, tampered data)."""


class ConfigError(PreferencesError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
