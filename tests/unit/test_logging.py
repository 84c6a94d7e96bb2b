from __future__ import annotations

import json
import logging

from user_preferences.observability.logging import JsonFormatter, KVLogger, get_logger


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_kv_logger_passes_fields_as_extra() -> None:
    logger = logging.getLogger("user_preferences.test_kv")
    handler = _ListHandler()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        KVLogger(logger).info("prefs_saved", key="options/graphics", path="/tmp/x")
    finally:
        logger.removeHandler(handler)

    (record,) = handler.records
    assert record.getMessage() == "prefs_saved"
    assert record.key == "options/graphics"  # type: ignore[attr-defined]
    assert record.path == "/tmp/x"  # type: ignore[attr-defined]


def test_json_formatter_includes_extras() -> None:
    record = logging.LogRecord("user_preferences", logging.INFO, __file__, 1, "prefs_loaded", (), None)
    record.key = "ui"
    record.obj = object()

    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "user_preferences"
    assert payload["message"] == "prefs_loaded"
    assert payload["key"] == "ui"
    assert payload["obj"].startswith("<object object")


def test_get_logger_name() -> None:
    assert get_logger("user_preferences.storage").name == "user_preferences.storage"
