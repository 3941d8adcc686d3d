"""
Entry store: the named cells of a sheet and their bookkeeping.

The store only knows about names, sources and cache slots. It never
evaluates anything; that is the Sheet's job (see core.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, List, Optional, Set

from .exceptions import DuplicateNameError, SheetError, UnknownEntryError
from .value import NO_VALUE


class EntryStatus(Enum):
    """State of an entry's cache."""
    STALE = auto()       # Value needs (re)evaluation
    COMPUTING = auto()   # Currently being evaluated (cycle detection)
    CLEAN = auto()       # Value is cached and valid
    ERRORED = auto()     # Last evaluation failed, error is cached


@dataclass
class Entry:
    """
    A named, script-backed parameter.

    Entries store:
    - The script source and its parsed form
    - The cached value or cached error
    - The names read during the last evaluation (dependencies)
    - The names whose last evaluation read this one (dependents)
    """
    name: str
    source: str

    # Parsed script, or the error from parsing it
    parsed: Any = field(default=None, repr=False)
    parse_error: Optional[SheetError] = field(default=None, repr=False)

    # Cached value and state
    _value: Any = field(default=NO_VALUE, repr=False)
    _status: EntryStatus = field(default=EntryStatus.STALE)
    _error: Optional[SheetError] = field(default=None, repr=False)

    # Dependency tracking
    dependencies: Set[str] = field(default_factory=set)
    dependents: Set[str] = field(default_factory=set)

    @property
    def value(self) -> Any:
        return self._value

    @property
    def error(self) -> Optional[SheetError]:
        return self._error

    @property
    def status(self) -> EntryStatus:
        return self._status

    @property
    def is_clean(self) -> bool:
        return self._status is EntryStatus.CLEAN

    @property
    def is_stale(self) -> bool:
        return self._status is EntryStatus.STALE

    @property
    def is_computing(self) -> bool:
        return self._status is EntryStatus.COMPUTING

    def invalidate(self) -> bool:
        """
        Drop any cached value or error and mark the entry stale.

        Entries being computed are left alone. Returns True if a cached
        value or error was dropped.
        """
        if self._status in (EntryStatus.CLEAN, EntryStatus.ERRORED):
            self._status = EntryStatus.STALE
            self._value = NO_VALUE
            self._error = None
            return True
        return False

    def set_computing(self) -> None:
        self._status = EntryStatus.COMPUTING

    def set_clean(self, value: Any) -> None:
        """Mark this entry as valid with the given value."""
        self._value = value
        self._status = EntryStatus.CLEAN
        self._error = None

    def set_error(self, error: SheetError) -> None:
        """Mark this entry as having an error."""
        self._error = error
        self._status = EntryStatus.ERRORED
        self._value = NO_VALUE

    def set_stale(self) -> None:
        self._status = EntryStatus.STALE
        self._value = NO_VALUE
        self._error = None

    def replace_source(self, source: str) -> None:
        """Swap in new script text, discarding the parsed form and any cache."""
        self.source = source
        self.parsed = None
        self.parse_error = None
        self.set_stale()


class EntryStore:
    """
    Mapping of entry name -> Entry.

    Enforces that names are unique and that every operation targets an
    existing entry.
    """

    def __init__(self):
        self._entries: Dict[str, Entry] = {}

    def create(self, name: str, source: str) -> Entry:
        """Add a new entry. Raises DuplicateNameError if the name is taken."""
        if name in self._entries:
            raise DuplicateNameError(name)
        entry = Entry(name=name, source=source)
        self._entries[name] = entry
        return entry

    def get(self, name: str) -> Entry:
        """Get an entry by name. Raises UnknownEntryError if absent."""
        try:
            return self._entries[name]
        except KeyError:
            raise UnknownEntryError(name) from None

    def find(self, name: str) -> Optional[Entry]:
        """Get an entry by name, or None if absent."""
        return self._entries.get(name)

    def get_raw(self, name: str) -> str:
        return self.get(name).source

    def set_source(self, name: str, source: str) -> Entry:
        """Replace an entry's script text. Invalidation is up to the caller."""
        entry = self.get(name)
        entry.replace_source(source)
        return entry

    def remove(self, name: str) -> Entry:
        """Remove and return an entry. Raises UnknownEntryError if absent."""
        entry = self.get(name)
        del self._entries[name]
        return entry

    def names(self) -> List[str]:
        return list(self._entries)

    def entries(self) -> List[Entry]:
        return list(self._entries.values())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
