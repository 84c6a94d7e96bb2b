from __future__ import annotations

from .logging import LOG_LEVELS, JsonFormatter, KVLogger, configure_logging, get_logger

__all__ = ["LOG_LEVELS", "JsonFormatter", "KVLogger", "configure_logging", "get_logger"]
