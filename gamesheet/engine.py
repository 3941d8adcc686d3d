"""
Script engines: how a sheet turns script text into values.

A Sheet talks to its engine through three calls:

    script = engine.parse(source, filename=name)      # may raise ParseError
    value = engine.evaluate(script, lookup, prelude)  # may raise anything
    functions = engine.parse_prelude(prelude_source)  # may raise ParseError

The engine must call `lookup(name)` in-line for every entry a script
reads, and must let whatever `lookup` raises propagate.

PythonScriptEngine is the default: scripts are written in a small,
side-effect free subset of Python (see parser.py and interpreter.py).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable

from .interpreter import DEFAULT_BUILTINS, Interpreter, Lookup, ScriptFunction
from .parser import ParsedScript, parse_function_defs, parse_script
from .prelude import Prelude
from .value import freeze


@runtime_checkable
class ScriptEngine(Protocol):
    """Protocol for script parsing/evaluation engines."""

    def parse(self, source: str, filename: str = "<script>") -> Any:
        """Parse script text. Raises ParseError if it doesn't parse."""
        ...

    def evaluate(self, script: Any, lookup: Lookup, prelude: Prelude) -> Any:
        """Run a parsed script and return its value."""
        ...

    def parse_prelude(self, source: str) -> Dict[str, Callable]:
        """Parse prelude text into named functions. Raises ParseError."""
        ...


class PythonScriptEngine:
    """
    Engine for scripts written in a Python subset.

    Usage:
        engine = PythonScriptEngine()
        script = engine.parse("speed * 2", filename="dash_speed")
        engine.evaluate(script, {"speed": 5}.__getitem__, Prelude())  # 10

    Extra builtins can be made available to every script:
        PythonScriptEngine(builtins={"pi": lambda: math.pi})
    """

    def __init__(self, builtins: Optional[Mapping[str, Callable]] = None):
        self.builtins: Dict[str, Callable] = dict(DEFAULT_BUILTINS)
        if builtins:
            self.builtins.update(builtins)

    def parse(self, source: str, filename: str = "<script>") -> ParsedScript:
        return parse_script(source, filename)

    def evaluate(self, script: ParsedScript, lookup: Lookup, prelude: Prelude) -> Any:
        interpreter = Interpreter(lookup, prelude, self.builtins)
        return freeze(interpreter.run(script.body))

    def parse_prelude(self, source: str) -> Dict[str, Callable]:
        functions: Dict[str, Callable] = {}
        for definition in parse_function_defs(source):
            functions[definition.name] = ScriptFunction(
                name=definition.name,
                params=[arg.arg for arg in definition.args.args],
                body=definition.body,
            )
        return functions
