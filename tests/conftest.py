from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from user_preferences import AppInfo, Settings


@pytest.fixture(autouse=True)
def isolated_prefs_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real per-user directories."""

    home = tmp_path / "prefs-home"
    monkeypatch.setenv("USER_PREFERENCES_HOME", str(home))
    for var in ("XDG_CONFIG_HOME", "XDG_DATA_HOME", "XDG_CACHE_HOME", "XDG_DATA_DIRS", "XDG_CONFIG_DIRS"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    # The CLI reconfigures the root logger; undo it after each test.
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def app() -> AppInfo:
    return AppInfo(name="preferences", author="Python community")


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(root=tmp_path / "root")
