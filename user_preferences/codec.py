"""JSON encoding of preference values.

Any value pydantic can serialize is accepted: builtins, dataclasses, pydantic
models, enums, datetimes. Decoding validates the JSON against the requested type.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, TypeVar, get_origin

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from .errors import SerializationError

T = TypeVar("T")

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


@lru_cache(maxsize=256)
def _cached_adapter(tp: Any) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


def _adapter(tp: Any) -> TypeAdapter[Any]:
    try:
        return _cached_adapter(tp)
    except TypeError:
        # Unhashable type expressions can't be cached.
        return TypeAdapter(tp)


def encode(value: Any, *, indent: int | None = None) -> bytes:
    try:
        return _ANY_ADAPTER.dump_json(value, indent=indent)
    except (PydanticSerializationError, ValueError, TypeError) as e:
        raise SerializationError(f"cannot serialize {type(value).__name__}: {e}") from e


def decode(tp: type[T] | Any, data: bytes | str) -> T:
    if get_origin(tp) is None and isinstance(tp, type) and issubclass(tp, dict) and tp is not dict:
        # dict subclasses (e.g. PreferencesMap) are validated as plain mappings, then wrapped.
        return tp(decode(dict[str, Any], data))
    try:
        adapter = _adapter(tp)
    except PydanticSchemaGenerationError as e:
        raise SerializationError(f"unsupported preferences type {tp!r}: {e}") from e
    try:
        return adapter.validate_json(data)
    except ValidationError as e:
        raise SerializationError(f"invalid data for {getattr(tp, '__name__', tp)!s}: {e}") from e
