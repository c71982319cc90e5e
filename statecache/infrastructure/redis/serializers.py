"""
Redis Serializers

Key and value encoding for the cache client. Keys always go through
``StringKeySerializer``; values go through a pluggable ``ValueSerializer``.
"""

import json
from functools import lru_cache
from typing import Any, Optional, Protocol, Type, runtime_checkable

from pydantic import PydanticUserError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python


class StringKeySerializer:
    """
    Encodes cache keys as UTF-8 strings.

    Only ``str`` keys are accepted, so a key can never be interpreted as a
    structured value. An optional prefix namespaces every key.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def serialize(self, key: str) -> bytes:
        if not isinstance(key, str):
            raise TypeError(f"Cache key must be str, got {type(key).__name__}")
        if not key:
            raise ValueError("Cache key cannot be empty")
        return f"{self.prefix}{key}".encode("utf-8")

    def deserialize(self, data: bytes) -> str:
        key = data.decode("utf-8")
        if self.prefix and key.startswith(self.prefix):
            return key[len(self.prefix) :]
        return key


@runtime_checkable
class ValueSerializer(Protocol):
    """Contract for value encodings stored in Redis."""

    def serialize(self, value: Any) -> bytes:
        """Encode ``value`` to bytes. Raises TypeError/ValueError when unsupported."""
        ...

    def deserialize(self, data: bytes, target: Optional[Type] = None) -> Any:
        """Decode bytes, optionally into ``target``. Raises ValueError when corrupt."""
        ...


@lru_cache(maxsize=256)
def _type_adapter(target: Type) -> TypeAdapter:
    return TypeAdapter(target)


def _reject_non_str_keys(value: Any) -> None:
    # JSON object keys are always strings; {1: "a"} would read back as {"1": "a"}
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(
                    f"Mapping keys must be str to survive JSON, got {type(key).__name__}"
                )
            _reject_non_str_keys(item)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            _reject_non_str_keys(item)


class JsonValueSerializer:
    """
    JSON value encoding.

    Anything pydantic can dump to JSON is accepted: models, dataclasses,
    datetimes, UUIDs, enums, sets. Plain dicts must have ``str`` keys, since
    JSON would silently turn other keys into strings.

    On read, values come back as plain JSON structures unless a target type
    is given. With a target, the stored JSON is validated in pydantic's strict
    JSON mode: a stored ``"42"`` is not accepted as ``int``, while JSON-native
    forms such as ISO datetimes and UUID strings still are.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def serialize(self, value: Any) -> bytes:
        _reject_non_str_keys(value)
        try:
            text = json.dumps(
                value, default=to_jsonable_python, separators=(",", ":")
            )
        except PydanticSerializationError as e:
            raise TypeError(str(e)) from e
        return text.encode(self.encoding)

    def deserialize(self, data: bytes, target: Optional[Type] = None) -> Any:
        try:
            text = data.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise ValueError(f"Stored value is not valid {self.encoding}: {e}") from e

        if target is None:
            try:
                return json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"Stored value is not valid JSON: {e}") from e

        try:
            adapter = _type_adapter(target)
        except PydanticUserError as e:
            raise TypeError(f"Cannot decode into {target!r}: {e}") from e

        try:
            return adapter.validate_json(text, strict=True)
        except ValidationError as e:
            raise ValueError(
                f"Stored value does not match {getattr(target, '__name__', target)}: {e}"
            ) from e
