from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from pydantic import SecretStr

from user_preferences.dirs import ROOT_ENV_VAR, root_override
from user_preferences.errors import ConfigError
from user_preferences.observability.logging import LOG_LEVELS
from user_preferences.types import AppDataType, Cipher

from .loader import load_config

if TYPE_CHECKING:
    from user_preferences.security import SecurityManager

__all__ = ["ROOT_ENV_VAR", "Settings", "load_settings"]


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError("must be a mapping", path=name)
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Where and how preferences are stored.

    `root` replaces the platform data root for every data type. When `password`
    is set, stores created from these settings encrypt their files.
    """

    root: Path | None = None
    data_type: AppDataType = AppDataType.USER_CONFIG
    indent: int | None = None
    password: SecretStr | None = None
    cipher: Cipher = Cipher.CHACHA20_POLY1305
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(root=root_override())

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Settings:
        prefs = _section(raw, "preferences")
        security = _section(raw, "security")
        logging_cfg = _section(raw, "logging")

        root_raw = prefs.get("root")
        if root_raw is None or root_raw == "":
            root = root_override()
        elif isinstance(root_raw, str):
            root = Path(root_raw).expanduser()
        else:
            raise ConfigError("must be a string path", path="preferences.root")

        try:
            data_type = AppDataType(str(prefs.get("data_type", AppDataType.USER_CONFIG.value)).lower())
        except ValueError as e:
            choices = ", ".join(t.value for t in AppDataType)
            raise ConfigError(f"unknown data type (expected one of: {choices})", path="preferences.data_type") from e

        indent = prefs.get("indent")
        if indent is not None and (isinstance(indent, bool) or not isinstance(indent, int) or indent < 0):
            raise ConfigError("must be a non-negative integer or null", path="preferences.indent")

        password_raw = security.get("password")
        if password_raw is not None and not isinstance(password_raw, str):
            raise ConfigError("must be a string", path="security.password")
        password = SecretStr(password_raw) if password_raw else None

        try:
            cipher = Cipher(str(security.get("cipher", Cipher.CHACHA20_POLY1305.value)).lower())
        except ValueError as e:
            choices = ", ".join(c.value for c in Cipher)
            raise ConfigError(f"unknown cipher (expected one of: {choices})", path="security.cipher") from e

        log_level = str(logging_cfg.get("level", "INFO")).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"unknown level (expected one of: {', '.join(LOG_LEVELS)})", path="logging.level")

        return cls(
            root=root,
            data_type=data_type,
            indent=indent,
            password=password,
            cipher=cipher,
            log_level=log_level,
        )

    def security_manager(self) -> SecurityManager | None:
        """Build a SecurityManager from the configured password, if any."""

        if self.password is None:
            return None
        from user_preferences.security import SecurityManager

        return SecurityManager(self.password.get_secret_value(), self.cipher)


def load_settings(
    paths: Path | str | Sequence[Path | str],
    *,
    load_dotenv_file: bool = True,
    dotenv_path: Path | None = None,
) -> Settings:
    """Load YAML config file(s) and build `Settings` from them."""

    raw = load_config(paths, load_dotenv_file=load_dotenv_file, dotenv_path=dotenv_path)
    return Settings.from_mapping(raw)
