"""
GameSheet - scriptable, memoized parameters for game configuration.

This library provides:
- Named entries whose values are computed by small scripts
- Lazy evaluation with memoization of every result
- Automatic dependency tracking, recorded while scripts run
- Cascading cache invalidation when an entry is edited
- Cycle detection that reports the cycle instead of looping forever

Basic Usage:
    import gamesheet

    sheet = gamesheet.Sheet(prelude='''
    def square(x):
        return x * x
    ''')
    sheet.create('constant', '7.0')
    sheet.create('function', 'constant * 2')
    sheet.create('prelude', 'square(constant)')

    print(sheet.read('function'))   # Computes and caches: 14.0
    print(sheet.read('prelude'))    # 49.0

    # Edit an entry: everything that read it is recomputed on next read
    sheet.set_source('constant', '8.0')
    print(sheet.read('function'))   # 16.0

    # Sheets can be stored as YAML
    sheet = gamesheet.load('balance.gamesheet')

Key Concepts:
    - Sheet: The set of entries plus the prelude, and the evaluation engine
    - Entry: A named script and its cached value or error
    - Prelude: Functions shared by every script of a sheet
    - ScriptEngine: What parses and runs scripts (PythonScriptEngine by default)
    - SheetStack: Several sheets layered on top of each other
    - LockedSheet: A sheet shared between threads

See the individual module documentation for more details.
"""

from .core import Sheet
from .engine import PythonScriptEngine, ScriptEngine
from .exceptions import (
    CycleError,
    DuplicateNameError,
    EvaluationError,
    ParseError,
    SheetError,
    SheetFormatError,
    UnknownEntryError,
    UnknownFunctionError,
)
from .graph import DependencyGraph
from .interpreter import ScriptFunction
from .layers import SheetStack
from .loader import dump, dumps, load, loads
from .parser import ParsedScript, find_references
from .prelude import Prelude
from .store import Entry, EntryStatus, EntryStore
from .sync import LockedSheet
from .value import NO_VALUE, FrozenMap, ValueKind, freeze, kind_of, thaw

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "Sheet",
    "Entry",
    "EntryStatus",
    "EntryStore",
    "DependencyGraph",
    "Prelude",
    # Scripts
    "ScriptEngine",
    "PythonScriptEngine",
    "ScriptFunction",
    "ParsedScript",
    "find_references",
    # Values
    "ValueKind",
    "FrozenMap",
    "NO_VALUE",
    "freeze",
    "thaw",
    "kind_of",
    # Layering and threads
    "SheetStack",
    "LockedSheet",
    # Files
    "load",
    "loads",
    "dump",
    "dumps",
    # Exceptions
    "SheetError",
    "UnknownEntryError",
    "DuplicateNameError",
    "UnknownFunctionError",
    "ParseError",
    "EvaluationError",
    "CycleError",
    "SheetFormatError",
]


def browse(sheet: Sheet, name: str) -> None:
    """
    Print an entry's script, state and dependencies.

    Helps inspect how an entry arrived at its value.
    """
    entry = sheet._store.get(name)

    print(f"Entry: {entry.name}")
    print(f"Source: {entry.source}")
    print(f"State: {entry.status.name}")
    if entry.is_clean:
        print(f"Value: {entry.value!r}")
    elif entry.error is not None:
        print(f"Error: {entry.error}")
    print(f"Reads: {sorted(entry.dependencies)}")
    print(f"Read by: {sorted(entry.dependents)}")
