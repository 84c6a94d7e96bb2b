from __future__ import annotations

import io
import json
import os
import stat
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest
from pydantic import BaseModel

from user_preferences import (
    AppInfo,
    Preferences,
    PreferencesIOError,
    PreferencesMap,
    PreferencesNotFoundError,
    SerializationError,
    Settings,
    compute_file_path,
    prefs_base_dir,
)
from user_preferences import storage


@dataclass
class PlayerData(Preferences):
    level: int
    health: float


class WindowState(Preferences, BaseModel):
    width: int
    height: int
    maximized: bool = False


def test_compute_file_path_appends_extension(app: AppInfo, settings: Settings) -> None:
    path = compute_file_path(app, "options/graphics", settings=settings)
    assert path == settings.root / "preferences" / "options" / "graphics.prefs.json"


def test_compute_file_path_empty_key_uses_default_name(app: AppInfo, settings: Settings) -> None:
    assert compute_file_path(app, "", settings=settings) == settings.root / "preferences" / "prefs.json"
    assert compute_file_path(app, "///", settings=settings) == settings.root / "preferences" / "prefs.json"


def test_compute_file_path_cannot_escape_app_dir(app: AppInfo, settings: Settings) -> None:
    path = compute_file_path(app, "../../etc/passwd", settings=settings)
    assert settings.root / "preferences" in path.parents


def test_default_settings_follow_root_env(app: AppInfo, isolated_prefs_home: Path) -> None:
    assert prefs_base_dir() == isolated_prefs_home
    assert prefs_base_dir(Settings()) == isolated_prefs_home
    path = PreferencesMap(color="blue").save(app, "basic")
    assert path == isolated_prefs_home / "preferences" / "basic.prefs.json"


def test_map_save_and_load(app: AppInfo, settings: Settings) -> None:
    faves = PreferencesMap()
    faves["color"] = "blue"
    faves["programming language"] = "Python"

    path = faves.save(app, "tests/docs/basic-example", settings=settings)
    assert json.loads(path.read_text(encoding="utf-8")) == faves

    loaded = PreferencesMap.load(app, "tests/docs/basic-example", settings=settings)
    assert isinstance(loaded, PreferencesMap)
    assert loaded == faves


def test_map_value_type_is_validated(app: AppInfo, settings: Settings) -> None:
    PreferencesMap(volume="loud").save(app, "audio", settings=settings)
    with pytest.raises(SerializationError):
        PreferencesMap.load(app, "audio", value_type=int, settings=settings)

    PreferencesMap(volume=7).save(app, "audio", settings=settings)
    assert PreferencesMap.load(app, "audio", value_type=int, settings=settings) == {"volume": 7}


def test_dataclass_preferences_roundtrip(app: AppInfo, settings: Settings) -> None:
    player = PlayerData(level=2, health=0.75)
    player.save(app, "tests/docs/custom-types", settings=settings)
    assert PlayerData.load(app, "tests/docs/custom-types", settings=settings) == player


def test_pydantic_preferences_roundtrip(app: AppInfo, settings: Settings) -> None:
    state = WindowState(width=800, height=600)
    state.save(app, "window", settings=settings)
    assert WindowState.load(app, "window", settings=settings) == state


def test_plain_values_via_module_functions(app: AppInfo, settings: Settings) -> None:
    storage.save(["a", "b"], app, "recent", settings=settings)
    assert storage.load(list[str], app, "recent", settings=settings) == ["a", "b"]


def test_load_missing_key_raises_not_found(app: AppInfo, settings: Settings) -> None:
    with pytest.raises(PreferencesNotFoundError) as ei:
        PreferencesMap.load(app, "never/saved", settings=settings)
    assert isinstance(ei.value, PreferencesIOError)
    assert ei.value.path is not None and ei.value.path.endswith("saved.prefs.json")


def test_load_corrupt_file_raises_serialization_error(app: AppInfo, settings: Settings) -> None:
    path = compute_file_path(app, "broken", settings=settings)
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SerializationError):
        PreferencesMap.load(app, "broken", settings=settings)


def test_load_wrong_shape_raises_serialization_error(app: AppInfo, settings: Settings) -> None:
    storage.save({"level": "high"}, app, "player", settings=settings)
    with pytest.raises(SerializationError):
        PlayerData.load(app, "player", settings=settings)


def test_unserializable_value_raises(app: AppInfo, settings: Settings) -> None:
    with pytest.raises(SerializationError):
        storage.save({"handle": object()}, app, "bad", settings=settings)
    assert not storage.exists(app, "bad", settings=settings)


def test_save_to_and_load_from_stream() -> None:
    buf = io.BytesIO()
    PreferencesMap(a=1).save_to(buf)
    assert buf.getvalue() == b'{"a":1}'

    buf.seek(0)
    assert PreferencesMap.load_from(buf) == {"a": 1}


def test_indent_setting(app: AppInfo, tmp_path: Path) -> None:
    settings = Settings(root=tmp_path, indent=2)
    path = PreferencesMap(a=1).save(app, "pretty", settings=settings)
    assert path.read_text(encoding="utf-8") == '{\n  "a": 1\n}'


def test_save_replaces_file_without_leftovers(app: AppInfo, settings: Settings) -> None:
    PreferencesMap(a=1).save(app, "options/graphics", settings=settings)
    path = PreferencesMap(a=2).save(app, "options/graphics", settings=settings)

    assert [p.name for p in path.parent.iterdir()] == ["graphics.prefs.json"]
    assert PreferencesMap.load(app, "options/graphics", settings=settings) == {"a": 2}


def test_exists_and_delete(app: AppInfo, settings: Settings) -> None:
    assert storage.exists(app, "tmp", settings=settings) is False
    assert storage.delete(app, "tmp", settings=settings) is False

    PreferencesMap(a=1).save(app, "tmp", settings=settings)
    assert storage.exists(app, "tmp", settings=settings) is True
    assert storage.delete(app, "tmp", settings=settings) is True
    assert storage.exists(app, "tmp", settings=settings) is False


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_saved_file_follows_umask(app: AppInfo, settings: Settings) -> None:
    old_mask = os.umask(0o027)
    try:
        path = PreferencesMap(a=1).save(app, "perms", settings=settings)
    finally:
        os.umask(old_mask)
    assert stat.S_IMODE(path.stat().st_mode) == 0o640


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_rewrite_keeps_existing_mode(app: AppInfo, settings: Settings) -> None:
    path = PreferencesMap(a=1).save(app, "perms", settings=settings)
    path.chmod(0o600)
    PreferencesMap(a=2).save(app, "perms", settings=settings)
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
