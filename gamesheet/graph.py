"""
Dependency edges between entries and cascading invalidation.

Edges are stored by name inside each Entry:
- entry.dependencies: names read during the entry's last evaluation
- entry.dependents: names whose last evaluation read this entry

The graph keeps the two sides in step. A script may also read a name
that has no entry (yet, or any more); such readers are parked in a
dangling index until the name is created, so the edge is never lost.

Invalidation is a breadth-first walk over dependents, visiting each
entry at most once per cascade.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Set

from .store import Entry, EntryStore

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Maintains forward/reverse edges over an EntryStore."""

    def __init__(self, store: EntryStore):
        self._store = store
        self._dangling: Dict[str, Set[str]] = {}

    def rebuild(self, entry: Entry, observed: Iterable[str]) -> None:
        """
        Replace an entry's dependencies with the names its latest
        evaluation read, and update the reverse edges to match.

        The old set is replaced, not merged: a name the script stopped
        reading no longer invalidates it.
        """
        new = set(observed)
        old = entry.dependencies

        for name in old - new:
            self._unlink(name, entry.name)
        for name in new - old:
            self._link(name, entry.name)

        entry.dependencies = new

    def attach(self, entry: Entry) -> None:
        """Hook a newly created entry up to scripts that already tried to read it."""
        readers = self._dangling.pop(entry.name, None)
        if readers:
            entry.dependents.update(readers)

    def detach(self, entry: Entry) -> None:
        """
        Unhook an entry that has been removed from the store.

        Its own reads are dropped. Its readers still list it as a
        dependency, so they are parked as dangling readers of its name.
        """
        for name in entry.dependencies:
            self._unlink(name, entry.name)
        entry.dependencies = set()

        readers = entry.dependents - {entry.name}
        if readers:
            self._dangling.setdefault(entry.name, set()).update(readers)
        entry.dependents = set()

    def invalidate(self, name: str) -> List[str]:
        """
        Mark an entry and everything that transitively read it as stale.

        Cached values and errors are dropped, but dependency edges are
        kept: they describe the last evaluation and are what makes the
        next cascade reach the right entries.

        Returns the names visited, in the order they were visited.
        """
        visited: Set[str] = {name}
        queue: Deque[str] = deque([name])
        order: List[str] = []
        dropped = 0

        while queue:
            current = queue.popleft()
            entry = self._store.find(current)
            if entry is None:
                continue
            order.append(current)
            if entry.invalidate():
                dropped += 1

            for dependent in entry.dependents:
                if dependent not in visited:
                    visited.add(dependent)
                    queue.append(dependent)

        logger.debug("Invalidated from '%s': visited %d, dropped %d cached", name, len(order), dropped)
        return order

    def invalidate_all(self) -> None:
        """Drop every cached value and error in the store."""
        for entry in self._store.entries():
            entry.invalidate()
        logger.debug("Invalidated all %d entries", len(self._store))

    def dangling_readers(self, name: str) -> Set[str]:
        """Names whose last evaluation read `name` while it had no entry."""
        return set(self._dangling.get(name, ()))

    def _link(self, target: str, reader: str) -> None:
        entry = self._store.find(target)
        if entry is None:
            self._dangling.setdefault(target, set()).add(reader)
        else:
            entry.dependents.add(reader)

    def _unlink(self, target: str, reader: str) -> None:
        entry = self._store.find(target)
        if entry is not None:
            entry.dependents.discard(reader)
            return
        readers = self._dangling.get(target)
        if readers is not None:
            readers.discard(reader)
            if not readers:
                del self._dangling[target]
