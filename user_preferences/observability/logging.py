from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter suitable for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Capture non-standard fields attached via `extra={...}`.
        for k, v in record.__dict__.items():
            if k in _RESERVED_ATTRS or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                payload[k] = v
            except TypeError:
                payload[k] = repr(v)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


class KVLogger:
    """A tiny structured logging adapter: keyword arguments become `extra` fields."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("debug", msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("info", msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("warning", msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("error", msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: object) -> None:
        kwargs.setdefault("exc_info", True)
        self._log("error", msg, *args, **kwargs)

    def _log(self, level: str, msg: str, *args: object, **kwargs: object) -> None:
        extra = kwargs.pop("extra", None)
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", False)
        if extra is None:
            extra_dict: dict[str, object] = {}
        elif isinstance(extra, dict):
            extra_dict = dict(extra)
        else:
            extra_dict = {"extra": repr(extra)}

        for k, v in kwargs.items():
            extra_dict[k] = v

        log_fn = getattr(self._logger, level)
        log_fn(msg, *args, extra=extra_dict, exc_info=exc_info, stack_info=stack_info)


def configure_logging(*, level: str = "INFO") -> None:
    """Configure root logging with JSON output on stderr.

    Library code never calls this; applications (and the CLI) do.
    """

    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    root.handlers.clear()
    root.addHandler(handler)


def get_logger(name: str = "user_preferences") -> KVLogger:
    return KVLogger(logging.getLogger(name))
