"""
Layered sheets.

A SheetStack views several sheets as one, in ascending order of
importance: a name is served by the topmost sheet that defines it. This
lets a mod or a difficulty preset override a few entries of a base sheet
without copying the rest:

    stack = SheetStack([base, hard_mode])
    stack.read('enemy_health')   # from hard_mode if it defines it, else base

Each layer evaluates its own scripts, so a script in a layer reads the
entries of that same layer.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Optional

from .core import Sheet
from .exceptions import UnknownEntryError


class SheetStack:
    """An ordered stack of sheets, base first."""

    def __init__(self, layers: Optional[Iterable[Sheet]] = None):
        self.layers: List[Sheet] = list(layers or [])

    def push(self, sheet: Sheet) -> None:
        """Add a sheet on top of the stack."""
        self.layers.append(sheet)

    def owner(self, name: str) -> Sheet:
        """The topmost sheet defining `name`. Raises UnknownEntryError."""
        for sheet in reversed(self.layers):
            if name in sheet:
                return sheet
        raise UnknownEntryError(name)

    def read(self, name: str) -> Any:
        return self.owner(name).read(name)

    def get_source(self, name: str) -> str:
        return self.owner(name).get_source(name)

    def dependencies(self, name: str) -> List[str]:
        return self.owner(name).dependencies(name)

    def dependents(self, name: str) -> List[str]:
        return self.owner(name).dependents(name)

    def invalidate(self, name: str) -> None:
        """Invalidate `name` in every layer that defines it."""
        found = False
        for sheet in self.layers:
            if name in sheet:
                sheet.invalidate(name)
                found = True
        if not found:
            raise UnknownEntryError(name)

    def names(self) -> List[str]:
        """Every name defined by any layer, each listed once."""
        seen = {}
        for sheet in self.layers:
            for name in sheet.names():
                seen.setdefault(name, None)
        return list(seen)

    def __contains__(self, name: object) -> bool:
        return any(name in sheet for sheet in self.layers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self.names())
