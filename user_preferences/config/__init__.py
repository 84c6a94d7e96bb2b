"""Configuration loading and schema.

- YAML-first configuration
- Strict ${ENV_VAR} expansion (missing/empty env vars are errors)
"""

from __future__ import annotations

from user_preferences.errors import ConfigError

from .loader import load_config
from .model import ROOT_ENV_VAR, Settings, load_settings

__all__ = ["ConfigError", "ROOT_ENV_VAR", "Settings", "load_config", "load_settings"]
