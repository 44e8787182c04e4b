from __future__ import annotations

"""Per-request key/value store shared by middleware, views and the serializer."""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class ContextKey(Generic[T]):
    """Name of a context value together with the type it must carry."""

    name: str
    type_: Optional[Type[T]] = None

    def check(self, value: Any) -> None:
        if self.type_ is None or value is None:
            return
        # bool is an int subclass; an int key must not silently accept a flag
        if self.type_ is int and isinstance(value, bool):
            raise TypeError(f"context key {self.name!r} expects int, got bool")
        if not isinstance(value, self.type_):
            raise TypeError(
                f"context key {self.name!r} expects {self.type_.__name__}, got {type(value).__name__}"
            )


Key = Union[ContextKey[Any], str]

MAX_BODY_SIZE: ContextKey[int] = ContextKey("max_body_size", int)
START_TIME: ContextKey[float] = ContextKey("start_time", float)
DEBUG_FLAG: ContextKey[bool] = ContextKey("debug", bool)

WELL_KNOWN_KEYS: Dict[str, ContextKey[Any]] = {key.name: key for key in (MAX_BODY_SIZE, START_TIME, DEBUG_FLAG)}


def _name(key: Key) -> str:
    return key.name if isinstance(key, ContextKey) else key


class ContextStore:
    """Mapping scoped to exactly one request; storage is allocated on first write."""

    __slots__ = ("_values",)

    def __init__(self) -> None:
        self._values: Optional[Dict[str, Any]] = None

    def set(self, key: Key, value: Any) -> None:
        typed = key if isinstance(key, ContextKey) else WELL_KNOWN_KEYS.get(key)
        if typed is not None:
            typed.check(value)
        if self._values is None:
            self._values = {}
        self._values[_name(key)] = value

    def get(self, key: Key) -> Any:
        if self._values is None:
            return None
        return self._values.get(_name(key))

    def get_or_default(self, key: Key, fallback: Any) -> Any:
        if self._values is None:
            return fallback
        return self._values.get(_name(key), fallback)

    def __contains__(self, key: object) -> bool:
        if self._values is None or not isinstance(key, (ContextKey, str)):
            return False
        return _name(key) in self._values

    def __len__(self) -> int:
        return 0 if self._values is None else len(self._values)

    def __repr__(self) -> str:
        return f"ContextStore({self._values or {}!r})"


__all__ = [
    "ContextKey",
    "ContextStore",
    "DEBUG_FLAG",
    "MAX_BODY_SIZE",
    "START_TIME",
]
