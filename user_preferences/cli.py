from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import ConfigError, Settings, load_settings
from .errors import PreferencesError, PreferencesNotFoundError
from .observability.logging import LOG_LEVELS, configure_logging, get_logger
from .storage import PreferencesMap, prefs_base_dir
from .store import PreferencesStore
from .types import AppInfo

log = get_logger("user_preferences.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="user-preferences",
        description="Read and write user-specific application data",
    )
    parser.add_argument("--app", required=True, help="Application name")
    parser.add_argument("--author", required=True, help="Application author")
    parser.add_argument("--config", type=Path, action="append", help="YAML config file (repeatable; later files win)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (overrides logging.level from the config)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    path_p = sub.add_parser("path", help="Print the file that stores KEY")
    path_p.add_argument("key")

    show_p = sub.add_parser("show", help="Print the preferences stored under KEY as JSON")
    show_p.add_argument("key")

    set_p = sub.add_parser("set", help="Set NAME=VALUE in the preferences map stored under KEY")
    set_p.add_argument("key")
    set_p.add_argument("name")
    set_p.add_argument("value", help="JSON value; anything that is not valid JSON is stored as a string")

    unset_p = sub.add_parser("unset", help="Remove NAME from the preferences map stored under KEY")
    unset_p.add_argument("key")
    unset_p.add_argument("name")

    delete_p = sub.add_parser("delete", help="Delete the preferences stored under KEY")
    delete_p.add_argument("key")

    sub.add_parser("print-config", help="Print the effective settings (secrets redacted)")

    return parser


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _load_map(store: PreferencesStore, key: str) -> PreferencesMap:
    if not store.exists(key):
        return PreferencesMap()
    return store.load(PreferencesMap, key)


def _write_json(obj: Any) -> None:
    sys.stdout.write(json.dumps(obj, ensure_ascii=False, indent=2))
    sys.stdout.write("\n")


def _settings_dump(store: PreferencesStore) -> dict[str, Any]:
    s = store.settings
    return {
        "root": str(s.root) if s.root is not None else None,
        "base_dir": str(prefs_base_dir(s)),
        "data_type": s.data_type.value,
        "indent": s.indent,
        "encrypted": store.encrypted,
        "password": "<redacted>" if s.password is not None else None,
        "cipher": s.cipher.value,
        "log_level": s.log_level,
    }


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint referenced by pyproject.toml."""

    parser = _build_parser()
    try:
        ns = parser.parse_args(argv)
    except SystemExit as e:
        # argparse has already printed help/usage to stdout/stderr.
        code = e.code
        return int(code) if isinstance(code, int) else 1

    try:
        settings = load_settings(ns.config) if ns.config else Settings.from_env()
    except ConfigError as e:
        configure_logging(level=ns.log_level or "INFO")
        log.error("config_error", error=str(e))
        sys.stderr.write(f"ConfigError: {e}\n")
        return 2

    configure_logging(level=ns.log_level or settings.log_level)
    store = PreferencesStore(AppInfo(name=ns.app, author=ns.author), settings)

    try:
        if ns.command == "print-config":
            _write_json(_settings_dump(store))
        elif ns.command == "path":
            sys.stdout.write(f"{store.path(ns.key)}\n")
        elif ns.command == "show":
            _write_json(store.load(Any, ns.key))
        elif ns.command == "set":
            prefs = _load_map(store, ns.key)
            prefs[ns.name] = _parse_value(ns.value)
            store.save(prefs, ns.key)
            log.info("prefs_set", key=ns.key, field=ns.name)
        elif ns.command == "unset":
            prefs = _load_map(store, ns.key)
            if ns.name in prefs:
                del prefs[ns.name]
                store.save(prefs, ns.key)
                log.info("prefs_unset", key=ns.key, field=ns.name)
        elif ns.command == "delete":
            if not store.delete(ns.key):
                sys.stderr.write(f"No preferences stored under {ns.key!r}\n")
                return 3
        return 0

    except PreferencesNotFoundError as e:
        sys.stderr.write(f"Not found: {e}\n")
        return 3
    except PreferencesError as e:
        log.error("preferences_error", error=str(e), error_type=type(e).__name__)
        sys.stderr.write(f"{type(e).__name__}: {e}\n")
        return 1
