"""
Values produced by entry scripts.

A value is one of:
- NOTHING: None
- BOOLEAN: True / False
- NUMBER: int or float
- TEXT: str
- SEQUENCE: tuple of values
- MAPPING: FrozenMap of str -> value

Values are immutable, so a cached value can be handed to any number of
readers without copying. freeze() turns whatever a script returned into
one, or raises TypeError if it can't be represented.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any, Dict, Final, Iterator, Mapping


class ValueKind(Enum):
    """Tag of a value."""
    NOTHING = auto()
    BOOLEAN = auto()
    NUMBER = auto()
    TEXT = auto()
    SEQUENCE = auto()
    MAPPING = auto()


class FrozenMap(Mapping[str, Any]):
    """An immutable, hashable mapping of names to values."""

    __slots__ = ("_data", "_hash")

    def __init__(self, data: Mapping[str, Any] = ()):
        self._data: Dict[str, Any] = dict(data)
        self._hash = None

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self._data.items()))
        return self._hash

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"FrozenMap({self._data!r})"

    def thaw(self) -> Dict[str, Any]:
        """Return a plain, mutable dict copy (nested values are thawed too)."""
        return {key: thaw(value) for key, value in self._data.items()}


def kind_of(value: Any) -> ValueKind:
    """Return the tag of an already-frozen value."""
    if value is None:
        return ValueKind.NOTHING
    # bool before number: bool is a subclass of int
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, tuple):
        return ValueKind.SEQUENCE
    if isinstance(value, FrozenMap):
        return ValueKind.MAPPING
    raise TypeError(f"Not a sheet value: {type(value).__name__}")


def freeze(obj: Any) -> Any:
    """
    Convert a Python object into an immutable sheet value.

    Lists and tuples become tuples, dicts become FrozenMaps with string
    keys, recursively. Raises TypeError for anything else.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, (list, tuple)):
        return tuple(freeze(item) for item in obj)
    if isinstance(obj, Mapping):
        frozen = {}
        for key, item in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"Mapping keys must be text, got {type(key).__name__}")
            frozen[key] = freeze(item)
        return FrozenMap(frozen)
    raise TypeError(f"Scripts cannot produce values of type {type(obj).__name__}")


def thaw(value: Any) -> Any:
    """Convert a frozen value back into plain lists and dicts."""
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    if isinstance(value, FrozenMap):
        return value.thaw()
    return value


# Sentinel for "no cached value", since None is a real value
class _NoValue:
    """Sentinel class for representing a missing value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE: Final = _NoValue()
