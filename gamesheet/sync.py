"""
Thread-safe access to a sheet.

A Sheet is single-owner: a write racing a read can see half an
invalidation. LockedSheet puts one lock around the whole sheet, which
is all a multi-threaded host needs. The lock is re-entrant so a prelude
function running inside a read may call back into the same LockedSheet.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional

from .core import Sheet
from .store import EntryStatus


class LockedSheet:
    """
    Serializes every call to a wrapped Sheet.

    Usage:
        shared = LockedSheet(gamesheet.load('balance.gamesheet'))
        # from any thread:
        shared.read('enemy_health')
        shared.set_source('enemy_health', '250')
    """

    def __init__(self, sheet: Optional[Sheet] = None):
        self._sheet = sheet if sheet is not None else Sheet()
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Hold this to run several calls as one step."""
        return self._lock

    @property
    def sheet(self) -> Sheet:
        """The wrapped sheet. Only touch it while holding `lock`."""
        return self._sheet

    def create(self, name: str, source: str) -> None:
        with self._lock:
            self._sheet.create(name, source)

    def read(self, name: str) -> Any:
        with self._lock:
            return self._sheet.read(name)

    def set_source(self, name: str, source: str) -> None:
        with self._lock:
            self._sheet.set_source(name, source)

    def remove(self, name: str) -> None:
        with self._lock:
            self._sheet.remove(name)

    def invalidate(self, name: str) -> List[str]:
        with self._lock:
            return self._sheet.invalidate(name)

    def names(self) -> List[str]:
        with self._lock:
            return self._sheet.names()

    def get_source(self, name: str) -> str:
        with self._lock:
            return self._sheet.get_source(name)

    def status(self, name: str) -> EntryStatus:
        with self._lock:
            return self._sheet.status(name)

    def dependencies(self, name: str) -> List[str]:
        with self._lock:
            return self._sheet.dependencies(name)

    def dependents(self, name: str) -> List[str]:
        with self._lock:
            return self._sheet.dependents(name)

    def define(self, name: str, function: Callable) -> None:
        with self._lock:
            self._sheet.define(name, function)

    def set_prelude(self, source: str) -> None:
        with self._lock:
            self._sheet.set_prelude(source)

    def values(self) -> Dict[str, Any]:
        with self._lock:
            return self._sheet.values()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._sheet

    def __len__(self) -> int:
        with self._lock:
            return len(self._sheet)
