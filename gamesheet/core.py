"""
The Sheet: entries, prelude, and the evaluation engine tying them together.

A read of an entry:
- returns the cached value (or re-raises the cached error) if there is one
- otherwise parses the entry's script if needed and runs it, recording
  every entry the script reads along the way
- caches the result and replaces the entry's dependency edges with the
  names that were actually read

A write to an entry (set_source, remove) invalidates it and, through the
reverse edges, everything whose last evaluation read it. So a read right
after a write always sees the written state.

Cycles are caught by the COMPUTING status: reading an entry that is
already being computed further up the call chain raises CycleError
instead of recursing forever.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Set

from .engine import PythonScriptEngine, ScriptEngine
from .exceptions import CycleError, EvaluationError, ParseError, SheetError
from .graph import DependencyGraph
from .prelude import Prelude
from .store import Entry, EntryStatus, EntryStore
from .value import freeze

logger = logging.getLogger(__name__)

# Deepest chain of entries one read may evaluate. Each level costs a
# dozen or so Python frames, so the recursion limit is raised to match.
MAX_DEPTH = 400
RECURSION_LIMIT = 10000


@contextmanager
def _recursion_room(limit: int) -> Iterator[None]:
    """Raise the interpreter's recursion limit to at least `limit` for a block."""
    previous = sys.getrecursionlimit()
    if previous >= limit:
        yield
        return
    sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Sheet:
    """
    A set of named, script-backed entries with memoized evaluation.

    Usage:
        sheet = Sheet()
        sheet.create('c', '5')
        sheet.create('b', 'c * 2')
        sheet.create('a', 'b + 1')
        sheet.read('a')              # 11

        sheet.set_source('c', '10')  # invalidates c, b and a
        sheet.read('a')              # 21

    A sheet is not thread-safe; see sync.LockedSheet for hosts that need
    to share one between threads.
    """

    def __init__(
        self,
        entries: Optional[Mapping[str, str]] = None,
        prelude: Optional[str] = None,
        engine: Optional[ScriptEngine] = None,
    ):
        self.engine: ScriptEngine = engine if engine is not None else PythonScriptEngine()
        self.prelude = Prelude()
        self.prelude_source = ""
        self._script_functions: Set[str] = set()
        # Host functions hidden by a script function of the same name
        self._shadowed: Dict[str, Callable] = {}
        self._store = EntryStore()
        self._graph = DependencyGraph(self._store)
        # Names being evaluated, outermost first. Only used to report cycle paths.
        self._eval_stack: List[str] = []
        # Names read by each evaluation in progress, innermost last
        self._observed: List[Set[str]] = []

        if prelude:
            self.set_prelude(prelude)
        if entries:
            for name, source in entries.items():
                self.create(name, source)

    # Entries

    def create(self, name: str, source: str) -> None:
        """Add an entry. Raises DuplicateNameError if the name is taken."""
        entry = self._store.create(name, source)
        self._graph.attach(entry)
        if entry.dependents:
            # Scripts that failed to read this name before now get another go
            self._graph.invalidate(name)
        logger.debug("Created entry '%s'", name)

    def set_source(self, name: str, source: str) -> None:
        """Replace an entry's script, invalidating it and all its dependents."""
        self._store.set_source(name, source)
        self._graph.invalidate(name)
        logger.debug("Set source of '%s'", name)

    def remove(self, name: str) -> None:
        """
        Remove an entry.

        Everything that read it is invalidated. Their next read fails with
        UnknownEntryError, until an entry of the same name is created again.
        """
        self._store.get(name)
        self._graph.invalidate(name)
        entry = self._store.remove(name)
        self._graph.detach(entry)
        logger.debug("Removed entry '%s'", name)

    def invalidate(self, name: str) -> List[str]:
        """Drop the cache of an entry and its dependents. Returns the names visited."""
        self._store.get(name)
        return self._graph.invalidate(name)

    def names(self) -> List[str]:
        return self._store.names()

    def get_source(self, name: str) -> str:
        return self._store.get_raw(name)

    get_raw = get_source

    def status(self, name: str) -> EntryStatus:
        return self._store.get(name).status

    def dependencies(self, name: str) -> List[str]:
        """Names read by the entry's last evaluation."""
        return sorted(self._store.get(name).dependencies)

    def dependents(self, name: str) -> List[str]:
        """Names of entries whose last evaluation read this one."""
        return sorted(self._store.get(name).dependents)

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def __contains__(self, name: object) -> bool:
        return name in self._store

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"Sheet({len(self._store)} entries, {len(self.prelude)} prelude functions)"

    # Prelude

    def define(self, name: str, function: Callable) -> None:
        """Add or replace a prelude function. Drops every cached result."""
        self.prelude.define(name, function)
        self._script_functions.discard(name)
        self._shadowed.pop(name, None)
        self._graph.invalidate_all()

    def resolve(self, name: str) -> Callable:
        return self.prelude.resolve(name)

    def set_prelude(self, source: str) -> None:
        """
        Replace the script-defined prelude functions with those in `source`.

        Functions the host registered with define() stay. One that `source`
        redefines is hidden, and comes back once a later prelude no longer
        defines that name. Raises ParseError and keeps the old prelude if
        the source doesn't parse.
        """
        functions = self.engine.parse_prelude(source)
        logger.debug("Rebuilding prelude with %d functions", len(functions))

        for name in self._script_functions:
            self.prelude.unregister(name)
        for name, function in self._shadowed.items():
            self.prelude.define(name, function)

        # What's left in the prelude now was registered by the host
        self._shadowed = {}
        for name, function in functions.items():
            if name in self.prelude:
                self._shadowed[name] = self.prelude.resolve(name)
            self.prelude.define(name, function)
        self._script_functions = set(functions)
        self.prelude_source = source
        self._graph.invalidate_all()

    # Evaluation

    def read(self, name: str) -> Any:
        """
        Get the value of an entry, evaluating its script if needed.

        A read made while another entry is being evaluated counts as a
        read by that entry, even when it comes from a host function
        calling back into the sheet.

        Raises UnknownEntryError, CycleError, or the error the entry's
        evaluation failed with (ParseError, EvaluationError, or an error
        from an entry it read). A RecursionError from a chain of entries
        too deep to evaluate is not cached.
        """
        if not self._observed:
            with _recursion_room(RECURSION_LIMIT):
                return self._read(name)
        # Record before reading, so a read that fails still counts
        self._observed[-1].add(name)
        return self._read(name)

    def _read(self, name: str) -> Any:
        entry = self._store.get(name)

        if entry.status is EntryStatus.CLEAN:
            return entry.value
        if entry.status is EntryStatus.ERRORED:
            raise entry.error.with_traceback(None)
        if entry.status is EntryStatus.COMPUTING:
            # We're being evaluated further up the call chain
            start = self._eval_stack.index(name)
            path = self._eval_stack[start:] + [name]
            logger.debug("Cycle detected: %s", " -> ".join(path))
            raise CycleError(path)
        if len(self._eval_stack) >= MAX_DEPTH:
            raise RecursionError(
                f"Reading '{name}' nests entries more than {MAX_DEPTH} deep"
            )

        return self._evaluate(entry)

    def _evaluate(self, entry: Entry) -> Any:
        name = entry.name
        observed: Set[str] = set()

        def lookup(dependency: str) -> Any:
            if not isinstance(dependency, str):
                raise TypeError(f"Entry names must be text, got {type(dependency).__name__}")
            return self.read(dependency)

        entry.set_computing()
        self._eval_stack.append(name)
        self._observed.append(observed)

        try:
            script = self._parse(entry)
            logger.debug("Evaluating '%s'", name)
            value = freeze(self.engine.evaluate(script, lookup, self.prelude))

        except (CycleError, RecursionError):
            # Not cached: the entry stays stale so the next read tries again
            self._graph.rebuild(entry, observed)
            entry.set_stale()
            raise

        except SheetError as e:
            self._graph.rebuild(entry, observed)
            entry.set_error(e)
            raise

        except Exception as e:
            error = EvaluationError(name, e)
            self._graph.rebuild(entry, observed)
            entry.set_error(error)
            raise error from e

        finally:
            self._observed.pop()
            self._eval_stack.pop()
            if entry.is_computing:
                entry.set_stale()

        self._graph.rebuild(entry, observed)
        entry.set_clean(value)
        return value

    def _parse(self, entry: Entry) -> Any:
        """
        Get the entry's parsed script, parsing it on first use.

        Only a ParseError is kept on the entry. Anything else the engine
        raises says nothing about the text and is left to the caller.
        """
        if entry.parse_error is not None:
            raise entry.parse_error.with_traceback(None)
        if entry.parsed is None:
            logger.debug("Parsing '%s'", entry.name)
            try:
                entry.parsed = self.engine.parse(entry.source, filename=entry.name)
            except ParseError as e:
                entry.parse_error = e
                raise
        return entry.parsed

    def values(self) -> Dict[str, Any]:
        """
        Read every entry.

        Returns name -> value, with the raised error in place of the
        value for entries that fail.
        """
        results: Dict[str, Any] = {}
        for name in self.names():
            try:
                results[name] = self.read(name)
            except (SheetError, RecursionError) as e:
                results[name] = e
        return results
