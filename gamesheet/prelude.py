"""
Prelude: the shared registry of functions entry scripts may call.

Functions are opaque here. They are either ScriptFunctions parsed from
prelude source by the script engine, or plain Python callables supplied
by the host:

    prelude = Prelude()
    prelude.define('clamp', lambda x, lo, hi: max(lo, min(hi, x)))
    prelude.resolve('clamp')(12, 0, 10)   # 10
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Mapping, Optional

from .exceptions import UnknownFunctionError


class Prelude:
    """A name -> function registry shared by every entry of a sheet."""

    def __init__(self, functions: Optional[Mapping[str, Callable]] = None):
        self._functions: Dict[str, Callable] = {}
        if functions:
            for name, function in functions.items():
                self.define(name, function)

    def define(self, name: str, function: Callable) -> None:
        """Register a function, replacing any previous one of the same name."""
        if not callable(function):
            raise TypeError(f"Prelude function '{name}' is not callable")
        self._functions[name] = function

    def resolve(self, name: str) -> Callable:
        """Get a function by name. Raises UnknownFunctionError if absent."""
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownFunctionError(name) from None

    def unregister(self, name: str) -> None:
        """Remove a function if it is registered."""
        self._functions.pop(name, None)

    def names(self) -> List[str]:
        return list(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)
