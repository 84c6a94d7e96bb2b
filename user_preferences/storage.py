"""Save and load user preferences as JSON files.

Any value that pydantic can serialize may be stored: builtins, dataclasses and
pydantic models. Bundle related settings in a `PreferencesMap`, or mix
`Preferences` into your own dataclass/model:

    APP_INFO = AppInfo(name="preferences", author="Python community")

    faves = PreferencesMap(color="blue", language="Python")
    faves.save(APP_INFO, "tests/docs/basic-example")
    assert PreferencesMap.load(APP_INFO, "tests/docs/basic-example") == faves

The `key` identifies a preferences file. It roughly maps to a directory
hierarchy under the platform data root, with forward slashes used as separators
on all platforms. Keys are sanitized to be valid paths; for human-readable paths
use only letters, digits, spaces, hyphens, underscores, periods and slashes.

Example keys: `options/graphics`, `saves/quicksave`, `bookmarks/favorites`.
"""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from typing import IO, Any, TypeVar

from .codec import decode, encode
from .config.model import Settings
from .dirs import get_app_root, get_data_root, key_components, root_override
from .errors import PreferencesIOError, PreferencesNotFoundError
from .observability.logging import get_logger
from .types import AppInfo

__all__ = [
    "DEFAULT_PREFS_FILENAME",
    "PREFS_FILE_EXTENSION",
    "Preferences",
    "PreferencesMap",
    "compute_file_path",
    "delete",
    "exists",
    "load",
    "load_from",
    "prefs_base_dir",
    "read_file",
    "save",
    "save_to",
    "write_file",
]

T = TypeVar("T")
P = TypeVar("P", bound="Preferences")

PREFS_FILE_EXTENSION = ".prefs.json"
DEFAULT_PREFS_FILENAME = "prefs.json"

log = get_logger(__name__)


def _resolve(settings: Settings | None) -> Settings:
    return settings if settings is not None else Settings.from_env()


def prefs_base_dir(settings: Settings | None = None) -> Path:
    """Return the directory under which all applications' preferences live."""

    s = _resolve(settings)
    root = s.root if s.root is not None else root_override()
    if root is not None:
        return root
    return get_data_root(s.data_type)


def compute_file_path(app: AppInfo, key: str, *, settings: Settings | None = None) -> Path:
    """Return the file that stores preferences for `key`.

    The last key component names the file (`<component>.prefs.json`); a key
    without components maps to `prefs.json` in the application directory.
    """

    s = _resolve(settings)
    app_root = get_app_root(s.data_type, app, root=s.root)
    parts = key_components(key)
    if not parts:
        return app_root / DEFAULT_PREFS_FILENAME
    return app_root.joinpath(*parts[:-1]) / f"{parts[-1]}{PREFS_FILE_EXTENSION}"


def _file_mode(path: Path) -> int:
    """Mode for a rewritten file: the existing file's, else 0o666 minus the umask."""

    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        pass
    # The umask can only be read by setting it.
    mask = os.umask(0o022)
    os.umask(mask)
    return 0o666 & ~mask


def write_file(path: Path, data: bytes) -> None:
    """Atomically replace `path` with `data`, creating parent directories.

    The file gets the permissions a plain `open(path, "wb")` would give it
    (mkstemp alone would leave it owner-only).
    """

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = _file_mode(path)
        # Temp file in the same directory so os.replace stays on one filesystem.
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
    except OSError as e:
        raise PreferencesIOError(f"cannot write preferences: {e}", path=path) from e


def read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise PreferencesNotFoundError("no preferences saved", path=path) from e
    except OSError as e:
        raise PreferencesIOError(f"cannot read preferences: {e}", path=path) from e


def save_to(value: Any, writer: IO[bytes], *, indent: int | None = None) -> None:
    """Serialize `value` as JSON into a binary writer."""

    data = encode(value, indent=indent)
    try:
        writer.write(data)
    except OSError as e:
        raise PreferencesIOError(f"cannot write preferences: {e}") from e


def load_from(tp: type[T] | Any, reader: IO[bytes]) -> T:
    """Deserialize a value of type `tp` from a binary reader."""

    try:
        data = reader.read()
    except OSError as e:
        raise PreferencesIOError(f"cannot read preferences: {e}") from e
    return decode(tp, data)


def save(value: Any, app: AppInfo, key: str, *, settings: Settings | None = None) -> Path:
    """Save `value` under `key` for the active user. Returns the file written.

    Raises:
        SerializationError: If `value` cannot be serialized.
        PreferencesIOError: On file I/O errors (e.g. permission denied).
    """

    s = _resolve(settings)
    path = compute_file_path(app, key, settings=s)
    write_file(path, encode(value, indent=s.indent))
    log.debug("prefs_saved", app=app.name, key=key, path=str(path))
    return path


def load(tp: type[T] | Any, app: AppInfo, key: str, *, settings: Settings | None = None) -> T:
    """Load the value previously saved under `key` as type `tp`.

    Raises:
        PreferencesNotFoundError: If nothing was saved under `key`.
        SerializationError: If the stored data does not match `tp`.
        PreferencesIOError: On other file I/O errors.
    """

    path = compute_file_path(app, key, settings=settings)
    value = decode(tp, read_file(path))
    log.debug("prefs_loaded", app=app.name, key=key, path=str(path))
    return value


def exists(app: AppInfo, key: str, *, settings: Settings | None = None) -> bool:
    return compute_file_path(app, key, settings=settings).is_file()


def delete(app: AppInfo, key: str, *, settings: Settings | None = None) -> bool:
    """Remove the preferences file for `key`. Returns False if there was none."""

    path = compute_file_path(app, key, settings=settings)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise PreferencesIOError(f"cannot delete preferences: {e}", path=path) from e
    log.debug("prefs_deleted", app=app.name, key=key, path=str(path))
    return True


class Preferences:
    """Mixin for types that can be saved and loaded as user data.

    Works with dataclasses and pydantic models:

        @dataclass
        class PlayerData(Preferences):
            level: int
            health: float

        PlayerData(level=2, health=0.75).save(APP_INFO, "saves/quicksave")
        player = PlayerData.load(APP_INFO, "saves/quicksave")
    """

    def save(self, app: AppInfo, key: str, *, settings: Settings | None = None) -> Path:
        """Saves the current state of this object. The data is local to the active user."""
        return save(self, app, key, settings=settings)

    @classmethod
    def load(cls: type[P], app: AppInfo, key: str, *, settings: Settings | None = None) -> P:
        """Loads a new instance from user data previously saved under `key`."""
        return load(cls, app, key, settings=settings)

    def save_to(self, writer: IO[bytes], *, indent: int | None = None) -> None:
        save_to(self, writer, indent=indent)

    @classmethod
    def load_from(cls: type[P], reader: IO[bytes]) -> P:
        return load_from(cls, reader)


class PreferencesMap(dict[str, Any], Preferences):
    """A string-keyed dict of preferences.

    Values may be any JSON-compatible data. Pass `value_type` when loading to
    validate (and coerce) every value.
    """

    @classmethod
    def load(  # type: ignore[override]
        cls,
        app: AppInfo,
        key: str,
        *,
        value_type: Any = Any,
        settings: Settings | None = None,
    ) -> PreferencesMap:
        return cls(load(dict[str, value_type], app, key, settings=settings))

    @classmethod
    def load_from(cls, reader: IO[bytes], *, value_type: Any = Any) -> PreferencesMap:  # type: ignore[override]
        return cls(load_from(dict[str, value_type], reader))
