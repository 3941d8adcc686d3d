"""
Reading and writing sheet documents.

A sheet document is YAML with two optional top-level keys:

    prelude: |
      def square(x):
          return x * x
    entries:
      constant: 7.0              # literals are stored as their script text
      function: constant * 2     # strings are scripts
      prelude: square(constant)
      title: "'Iron Sword'"      # a text value is a quoted script

Usage:
    sheet = gamesheet.load('balance.gamesheet')
    sheet.read('function')   # 14.0
    gamesheet.dump(sheet, 'balance.gamesheet')
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .core import Sheet
from .engine import ScriptEngine
from .exceptions import SheetFormatError, UnknownEntryError
from .parser import find_references

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_KEYS = ("prelude", "entries")


class _SheetDumper(yaml.SafeDumper):
    """SafeDumper that writes multi-line scripts as literal blocks."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.Node:
    style = "|" if "\n" in value else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", value, style=style)


_SheetDumper.add_representer(str, _represent_str)


def _to_source(name: str, value: Any) -> str:
    """Scripts are kept as-is, literals become the script that produces them."""
    if isinstance(value, str):
        return value
    return _literal(name, value)


def _literal(name: str, value: Any) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        # repr gives inf/nan, which a script would read as entry names
        return f"float('{value}')"
    if value is None or isinstance(value, (bool, int, float, str)):
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(_literal(name, item) for item in value) + "]"
    if isinstance(value, dict):
        items = (f"{_literal(name, key)}: {_literal(name, item)}" for key, item in value.items())
        return "{" + ", ".join(items) + "}"
    raise SheetFormatError(f"Entry '{name}' has unsupported value {value!r}")


def _parse_document(text: str) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SheetFormatError(f"Invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SheetFormatError(f"Expected a mapping at the top of the sheet, got {type(data).__name__}")
    unknown = sorted(str(key) for key in data if key not in _KEYS)
    if unknown:
        raise SheetFormatError(f"Unknown top-level keys: {', '.join(unknown)}")
    return data


def loads(
    text: str,
    engine: Optional[ScriptEngine] = None,
    validate: bool = False,
) -> Sheet:
    """
    Build a Sheet from YAML text.

    Args:
        text: The sheet document
        engine: Script engine for the sheet (defaults to PythonScriptEngine)
        validate: Check that every entry name a script mentions exists

    Raises SheetFormatError if the document isn't shaped like a sheet,
    ParseError if the prelude doesn't parse, and (with validate=True)
    UnknownEntryError for a reference to a missing entry.
    """
    data = _parse_document(text)

    prelude = data.get("prelude") or ""
    if not isinstance(prelude, str):
        raise SheetFormatError("'prelude' must be a string of function definitions")

    entries = data.get("entries") or {}
    if not isinstance(entries, dict):
        raise SheetFormatError("'entries' must be a mapping of names to scripts")

    sheet = Sheet(prelude=prelude, engine=engine)
    for name, value in entries.items():
        if not isinstance(name, str):
            raise SheetFormatError(f"Entry names must be text, got {name!r}")
        sheet.create(name, _to_source(name, value))

    if validate:
        check_references(sheet)

    logger.debug("Loaded sheet with %d entries", len(sheet))
    return sheet


def load(path: PathLike, engine: Optional[ScriptEngine] = None, validate: bool = False) -> Sheet:
    """Build a Sheet from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing sheet file: {path}")
    logger.debug("Loading sheet from %s", path)
    return loads(path.read_text(encoding="utf-8"), engine=engine, validate=validate)


def check_references(sheet: Sheet) -> None:
    """
    Check that every entry name mentioned by a script exists.

    Raises UnknownEntryError for the first missing name (in name order),
    or ParseError for a script that doesn't parse.
    """
    known = set(sheet.names())
    for name in sorted(known):
        missing = find_references(sheet.get_source(name), filename=name) - known
        if missing:
            raise UnknownEntryError(sorted(missing)[0])


def dumps(sheet: Sheet) -> str:
    """Write a Sheet's prelude and entry scripts as YAML text."""
    document: Dict[str, Any] = {}
    if sheet.prelude_source:
        document["prelude"] = sheet.prelude_source
    document["entries"] = {name: sheet.get_source(name) for name in sheet.names()}
    return yaml.dump(document, Dumper=_SheetDumper, sort_keys=False, allow_unicode=True)


def dump(sheet: Sheet, path: PathLike) -> None:
    """Write a Sheet to a YAML file."""
    Path(path).write_text(dumps(sheet), encoding="utf-8")
