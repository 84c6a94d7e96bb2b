"""Platform-appropriate locations for per-user and shared application data.

Layout per platform:
- Linux / other POSIX: XDG base directories (`$XDG_CONFIG_HOME`, ...).
- macOS: `~/Library/Application Support` and `~/Library/Caches`.
- Windows: Known Folders (roaming/local AppData, ProgramData).

Keys are `/`-separated on every platform. Each component is sanitized so the
resulting path is always a valid, non-hidden directory name.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from .errors import InvalidAppInfoError, PreferencesIOError, UnsupportedPlatformError
from .observability.logging import get_logger
from .types import AppDataType, AppInfo

__all__ = [
    "ROOT_ENV_VAR",
    "AppDataType",
    "AppInfo",
    "app_dir",
    "get_app_dir",
    "get_app_root",
    "get_data_root",
    "key_components",
    "root_override",
    "sanitized",
]


log = get_logger(__name__)

# Replaces the platform data root for every data type when set.
ROOT_ENV_VAR = "USER_PREFERENCES_HOME"


# Windows Known Folder ids (GUID fields as passed to SHGetKnownFolderPath).
_FOLDERID_ROAMING_APP_DATA = (0x3EB685DB, 0x65F9, 0x4CF6, (0xA0, 0x3A, 0xE3, 0xEF, 0x65, 0x72, 0x9F, 0x3D))
_FOLDERID_LOCAL_APP_DATA = (0xF1B32785, 0x6FBA, 0x4FCF, (0x9D, 0x55, 0x7B, 0x8E, 0x7F, 0x15, 0x70, 0x91))
_FOLDERID_PROGRAM_DATA = (0x62AB5D82, 0xFDC1, 0x4DC3, (0xA9, 0xDD, 0x07, 0x0D, 0x1D, 0x49, 0x5D, 0x97))

_WINDOWS_FOLDERS = {
    AppDataType.USER_CONFIG: (_FOLDERID_ROAMING_APP_DATA, "APPDATA"),
    AppDataType.USER_DATA: (_FOLDERID_ROAMING_APP_DATA, "APPDATA"),
    AppDataType.USER_CACHE: (_FOLDERID_LOCAL_APP_DATA, "LOCALAPPDATA"),
    AppDataType.SHARED_DATA: (_FOLDERID_PROGRAM_DATA, "PROGRAMDATA"),
    AppDataType.SHARED_CONFIG: (_FOLDERID_PROGRAM_DATA, "PROGRAMDATA"),
}

_XDG_USER = {
    AppDataType.USER_CONFIG: ("XDG_CONFIG_HOME", (".config",)),
    AppDataType.USER_DATA: ("XDG_DATA_HOME", (".local", "share")),
    AppDataType.USER_CACHE: ("XDG_CACHE_HOME", (".cache",)),
}

_XDG_SHARED = {
    AppDataType.SHARED_DATA: ("XDG_DATA_DIRS", "/usr/local/share"),
    AppDataType.SHARED_CONFIG: ("XDG_CONFIG_DIRS", "/etc/xdg"),
}


def _windows_known_folder(folder: tuple[int, int, int, tuple[int, ...]]) -> str:
    """Resolve a Known Folder path via SHGetKnownFolderPath. Empty string on failure."""
    import ctypes
    from ctypes import wintypes

    class GUID(ctypes.Structure):
        _fields_ = [
            ("Data1", wintypes.DWORD),
            ("Data2", wintypes.WORD),
            ("Data3", wintypes.WORD),
            ("Data4", wintypes.BYTE * 8),
        ]

    data1, data2, data3, data4 = folder
    guid = GUID(data1, data2, data3, (ctypes.c_byte * 8)(*data4))
    shell32 = ctypes.windll.shell32  # type: ignore[attr-defined]
    path_buf = ctypes.c_void_p()
    hr = shell32.SHGetKnownFolderPath(ctypes.byref(guid), 0, None, ctypes.byref(path_buf))
    if hr != 0 or not path_buf.value:
        return ""
    try:
        return ctypes.wstring_at(path_buf.value)
    finally:
        ctypes.windll.ole32.CoTaskMemFree(path_buf.value)  # type: ignore[attr-defined]


def _windows_root(data_type: AppDataType) -> Path:
    folder, env_var = _WINDOWS_FOLDERS[data_type]
    if sys.platform == "win32":
        try:
            path = _windows_known_folder(folder)
        except OSError:
            log.warning("known_folder_failed", data_type=data_type.value, exc_info=True)
            path = ""
        if path:
            return Path(path)

    value = os.environ.get(env_var, "")
    if not value:
        raise UnsupportedPlatformError(f"cannot locate {data_type.value} folder ({env_var} is not set)")
    return Path(value)


def _macos_root(data_type: AppDataType) -> Path:
    if data_type.is_shared:
        return Path("/Library/Application Support")
    try:
        home = Path.home()
    except RuntimeError as e:
        raise UnsupportedPlatformError(f"cannot locate home directory for {data_type.value}") from e
    if data_type is AppDataType.USER_CACHE:
        return home / "Library" / "Caches"
    return home / "Library" / "Application Support"


def _xdg_root(data_type: AppDataType) -> Path:
    if data_type.is_shared:
        env_var, fallback = _XDG_SHARED[data_type]
        for entry in os.environ.get(env_var, "").split(os.pathsep):
            # XDG base directories: relative entries are invalid and ignored.
            if entry and os.path.isabs(entry):
                return Path(entry)
        return Path(fallback)

    env_var, parts = _XDG_USER[data_type]
    value = os.environ.get(env_var, "")
    if value and os.path.isabs(value):
        return Path(value)
    try:
        home = Path.home()
    except RuntimeError as e:
        raise UnsupportedPlatformError(f"cannot locate home directory for {data_type.value}") from e
    return home.joinpath(*parts)


def root_override() -> Path | None:
    """Return the data root set through `USER_PREFERENCES_HOME`, if any."""

    value = os.environ.get(ROOT_ENV_VAR, "").strip()
    return Path(value).expanduser() if value else None


def get_data_root(data_type: AppDataType = AppDataType.USER_CONFIG, *, platform: str | None = None) -> Path:
    """Return the root directory for `data_type` on this (or the given) platform."""

    plat = platform or sys.platform
    if plat == "win32":
        return _windows_root(data_type)
    if plat == "darwin":
        return _macos_root(data_type)
    return _xdg_root(data_type)


def sanitized(component: str) -> str:
    """Make `component` safe to use as a single path segment.

    ASCII letters, digits, spaces, hyphens, underscores and (non-leading)
    periods are kept; every other character becomes `,<codepoint>,`.
    """

    out: list[str] = []
    for i, c in enumerate(component):
        is_valid = (
            (c.isascii() and c.isalnum())
            or c in " -_"
            # A leading period would create a hidden (or `.`/`..`) entry.
            or (c == "." and i != 0)
        )
        out.append(c if is_valid else f",{ord(c)},")
    return "".join(out)


def key_components(key: str) -> list[str]:
    """Split a `/`-separated key into sanitized components, skipping empty ones."""
    return [sanitized(part) for part in key.split("/") if part]


def _check_app_info(app: AppInfo) -> None:
    if not app.name or not app.author:
        raise InvalidAppInfoError(f"AppInfo requires a non-empty name and author, got {app!r}")


def get_app_root(
    data_type: AppDataType,
    app: AppInfo,
    *,
    root: Path | None = None,
    platform: str | None = None,
) -> Path:
    """Return the application's own directory under the data root.

    Windows groups applications by author (`<root>/<author>/<name>`); other
    platforms use `<root>/<name>`. Without an explicit `root`, the
    `USER_PREFERENCES_HOME` override wins over the platform data root.
    """

    _check_app_info(app)
    plat = platform or sys.platform
    if root is None:
        root = root_override()
    base = Path(root) if root is not None else get_data_root(data_type, platform=plat)
    if plat == "win32":
        return base / sanitized(app.author) / sanitized(app.name)
    return base / sanitized(app.name)


def get_app_dir(
    data_type: AppDataType,
    app: AppInfo,
    path: str,
    *,
    root: Path | None = None,
    platform: str | None = None,
) -> Path:
    """Compute (without creating) the directory for `path` under the app root."""
    return get_app_root(data_type, app, root=root, platform=platform).joinpath(*key_components(path))


def app_dir(
    data_type: AppDataType,
    app: AppInfo,
    path: str,
    *,
    root: Path | None = None,
    platform: str | None = None,
) -> Path:
    """Same as `get_app_dir`, but creates the directory (and its parents)."""

    target = get_app_dir(data_type, app, path, root=root, platform=platform)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PreferencesIOError(f"cannot create directory: {e}", path=target) from e
    return target
