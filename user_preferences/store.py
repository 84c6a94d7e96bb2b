from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

from . import security, storage
from .config.model import Settings
from .security import SecurityManager
from .types import AppInfo

T = TypeVar("T")


class PreferencesStore:
    """Preferences bound to one application and one set of settings.

    Files are encrypted when the settings carry a password (or an explicit
    `manager` is given); otherwise they are plain JSON.
    """

    def __init__(
        self,
        app: AppInfo,
        settings: Settings | None = None,
        *,
        manager: SecurityManager | None = None,
    ) -> None:
        self._app = app
        self._settings = settings if settings is not None else Settings.from_env()
        self._manager = manager if manager is not None else self._settings.security_manager()

    @property
    def app(self) -> AppInfo:
        return self._app

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def encrypted(self) -> bool:
        return self._manager is not None

    def path(self, key: str) -> Path:
        return storage.compute_file_path(self._app, key, settings=self._settings)

    def save(self, value: Any, key: str) -> Path:
        if self._manager is not None:
            return security.save(value, self._app, self._manager, key, settings=self._settings)
        return storage.save(value, self._app, key, settings=self._settings)

    def load(self, tp: type[T] | Any, key: str) -> T:
        if self._manager is not None:
            return security.load(tp, self._app, self._manager, key, settings=self._settings)
        return storage.load(tp, self._app, key, settings=self._settings)

    def exists(self, key: str) -> bool:
        return storage.exists(self._app, key, settings=self._settings)

    def delete(self, key: str) -> bool:
        return storage.delete(self._app, key, settings=self._settings)
