"""
Tree-walking interpreter for checked scripts.

The interpreter evaluates the ast produced by parser.parse_script. Bare
names resolve to local variables first, then to entries through the
`lookup` callback; g('name') looks an entry up by a computed name.
Every entry read goes through `lookup`, synchronously and in-line, so
the sheet sees each one while it happens.

A block's value is the value of the last statement it ran: an
expression statement gives its value, an if statement gives the value
of the branch taken, anything else gives None. `return` ends the script
(or function) early with a value.
"""

from __future__ import annotations

import ast
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .exceptions import UnknownEntryError, UnknownFunctionError
from .parser import LOOKUP_FUNCTION
from .prelude import Prelude
from .value import FrozenMap, freeze

Lookup = Callable[[str], Any]

_BINARY_OPERATORS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARISONS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


def _range(*args: int) -> tuple:
    return tuple(range(*args))


# Functions every script can call without a prelude
DEFAULT_BUILTINS: Mapping[str, Callable] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "float": float,
    "int": int,
    "len": len,
    "max": max,
    "min": min,
    "range": _range,
    "round": round,
    "sorted": sorted,
    "str": str,
    "sum": sum,
}


class _Return(Exception):
    def __init__(self, value: Any):
        self.value = value


class _Break(Exception):
    pass


class _Continue(Exception):
    pass


def _no_entries(name: str) -> Any:
    raise UnknownEntryError(name)


@dataclass
class ScriptFunction:
    """
    A function defined in prelude source.

    It runs with its own local scope but with the caller's lookup, so any
    entry it reads counts as a read by the calling entry.
    """
    name: str
    params: List[str]
    body: List[ast.stmt] = field(repr=False)
    filename: str = "<prelude>"

    def invoke(
        self,
        args: Sequence[Any],
        kwargs: Mapping[str, Any],
        lookup: Lookup,
        prelude: Optional[Prelude],
        builtins: Mapping[str, Callable],
    ) -> Any:
        scope = self._bind(args, kwargs)
        interpreter = Interpreter(lookup, prelude, builtins, scope)
        return interpreter.run(self.body)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """Call from Python, outside any sheet: entry reads fail."""
        return self.invoke(args, kwargs, _no_entries, None, DEFAULT_BUILTINS)

    def _bind(self, args: Sequence[Any], kwargs: Mapping[str, Any]) -> Dict[str, Any]:
        if len(args) > len(self.params):
            raise TypeError(
                f"{self.name}() takes {len(self.params)} arguments but {len(args)} were given"
            )
        scope = dict(zip(self.params, args))
        for key, value in kwargs.items():
            if key not in self.params:
                raise TypeError(f"{self.name}() got an unexpected argument '{key}'")
            if key in scope:
                raise TypeError(f"{self.name}() got multiple values for argument '{key}'")
            scope[key] = value
        missing = [param for param in self.params if param not in scope]
        if missing:
            raise TypeError(f"{self.name}() missing arguments: {', '.join(missing)}")
        return scope


class Interpreter:
    """Evaluates script statements and expressions against one local scope."""

    def __init__(
        self,
        lookup: Lookup,
        prelude: Optional[Prelude] = None,
        builtins: Mapping[str, Callable] = DEFAULT_BUILTINS,
        scope: Optional[Dict[str, Any]] = None,
    ):
        self.lookup = lookup
        self.prelude = prelude
        self.builtins = builtins
        self.scope: Dict[str, Any] = scope if scope is not None else {}

    def run(self, body: Sequence[ast.stmt]) -> Any:
        """Run a script or function body and return its value."""
        try:
            return self.exec_block(body)
        except _Return as ret:
            return ret.value

    # Statements

    def exec_block(self, body: Sequence[ast.stmt]) -> Any:
        result = None
        for statement in body:
            result = self.exec_statement(statement)
        return result

    def exec_statement(self, node: ast.stmt) -> Any:
        method = getattr(self, "exec_" + type(node).__name__, None)
        if method is None:
            raise SyntaxError(f"{type(node).__name__} is not supported")
        return method(node)

    def exec_Expr(self, node: ast.Expr) -> Any:
        return self.eval(node.value)

    def exec_Pass(self, node: ast.Pass) -> None:
        return None

    def exec_Assign(self, node: ast.Assign) -> None:
        value = self.eval(node.value)
        for target in node.targets:
            self.assign(target, value)

    def exec_AugAssign(self, node: ast.AugAssign) -> None:
        name = node.target.id
        current = self.scope[name] if name in self.scope else self.lookup(name)
        result = _BINARY_OPERATORS[type(node.op)](current, self.eval(node.value))
        self.scope[name] = freeze(result)

    def exec_If(self, node: ast.If) -> Any:
        if self.eval(node.test):
            return self.exec_block(node.body)
        return self.exec_block(node.orelse)

    def exec_For(self, node: ast.For) -> None:
        for item in self.eval(node.iter):
            self.assign(node.target, item)
            try:
                self.exec_block(node.body)
            except _Break:
                return None
            except _Continue:
                continue
        self.exec_block(node.orelse)

    def exec_Break(self, node: ast.Break) -> None:
        raise _Break()

    def exec_Continue(self, node: ast.Continue) -> None:
        raise _Continue()

    def exec_Return(self, node: ast.Return) -> None:
        raise _Return(self.eval(node.value) if node.value is not None else None)

    def assign(self, target: ast.AST, value: Any) -> None:
        if isinstance(target, ast.Name):
            self.scope[target.id] = value
            return
        items = tuple(value)
        if len(items) != len(target.elts):
            raise ValueError(f"cannot unpack {len(items)} values into {len(target.elts)} names")
        for element, item in zip(target.elts, items):
            self.assign(element, item)

    # Expressions

    def eval(self, node: ast.expr) -> Any:
        method = getattr(self, "eval_" + type(node).__name__, None)
        if method is None:
            raise SyntaxError(f"{type(node).__name__} is not supported")
        return method(node)

    def eval_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def eval_Name(self, node: ast.Name) -> Any:
        if node.id in self.scope:
            return self.scope[node.id]
        return self.lookup(node.id)

    def eval_BinOp(self, node: ast.BinOp) -> Any:
        left = self.eval(node.left)
        right = self.eval(node.right)
        return freeze(_BINARY_OPERATORS[type(node.op)](left, right))

    def eval_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return _UNARY_OPERATORS[type(node.op)](self.eval(node.operand))

    def eval_BoolOp(self, node: ast.BoolOp) -> Any:
        # Short-circuits, so an untaken operand reads no entries
        is_and = isinstance(node.op, ast.And)
        result = None
        for operand in node.values:
            result = self.eval(operand)
            if is_and and not result:
                return result
            if not is_and and result:
                return result
        return result

    def eval_Compare(self, node: ast.Compare) -> bool:
        left = self.eval(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.eval(comparator)
            if not _COMPARISONS[type(op)](left, right):
                return False
            left = right
        return True

    def eval_IfExp(self, node: ast.IfExp) -> Any:
        if self.eval(node.test):
            return self.eval(node.body)
        return self.eval(node.orelse)

    def eval_List(self, node: ast.List) -> tuple:
        return tuple(self.eval(element) for element in node.elts)

    eval_Tuple = eval_List

    def eval_Dict(self, node: ast.Dict) -> FrozenMap:
        items = {}
        for key, value in zip(node.keys, node.values):
            if key is None:
                # {**other}
                items.update(self.eval(value))
            else:
                items[self.eval(key)] = self.eval(value)
        return freeze(items)

    def eval_Subscript(self, node: ast.Subscript) -> Any:
        return self.eval(node.value)[self.eval(node.slice)]

    def eval_Slice(self, node: ast.Slice) -> slice:
        return slice(
            self.eval(node.lower) if node.lower is not None else None,
            self.eval(node.upper) if node.upper is not None else None,
            self.eval(node.step) if node.step is not None else None,
        )

    def eval_JoinedStr(self, node: ast.JoinedStr) -> str:
        return "".join(str(self.eval(part)) for part in node.values)

    def eval_FormattedValue(self, node: ast.FormattedValue) -> str:
        value = self.eval(node.value)
        if node.conversion == ord("r"):
            value = repr(value)
        elif node.conversion == ord("a"):
            value = ascii(value)
        elif node.conversion == ord("s"):
            value = str(value)
        spec = self.eval(node.format_spec) if node.format_spec is not None else ""
        return format(value, spec)

    def eval_ListComp(self, node: ast.ListComp) -> tuple:
        # Comprehension variables don't leak into the enclosing scope
        inner = Interpreter(self.lookup, self.prelude, self.builtins, dict(self.scope))
        results: List[Any] = []
        inner._comprehend(node.elt, node.generators, results)
        return tuple(results)

    def _comprehend(self, element: ast.expr, generators: Sequence[ast.comprehension], results: List[Any]) -> None:
        if not generators:
            results.append(self.eval(element))
            return
        first, rest = generators[0], generators[1:]
        for item in self.eval(first.iter):
            self.assign(first.target, item)
            if all(self.eval(condition) for condition in first.ifs):
                self._comprehend(element, rest, results)

    def eval_Call(self, node: ast.Call) -> Any:
        name = node.func.id
        if name == LOOKUP_FUNCTION and (self.prelude is None or name not in self.prelude):
            if len(node.args) != 1 or node.keywords:
                raise TypeError(f"{LOOKUP_FUNCTION}() takes exactly one entry name")
            return self.lookup(self.eval(node.args[0]))

        function = self.resolve_function(name)
        args = [self.eval(arg) for arg in node.args]
        kwargs = {keyword.arg: self.eval(keyword.value) for keyword in node.keywords}

        if isinstance(function, ScriptFunction):
            return function.invoke(args, kwargs, self.lookup, self.prelude, self.builtins)
        return freeze(function(*args, **kwargs))

    def resolve_function(self, name: str) -> Callable:
        """Prelude functions first, then builtins."""
        if self.prelude is not None and name in self.prelude:
            return self.prelude.resolve(name)
        if name in self.builtins:
            return self.builtins[name]
        raise UnknownFunctionError(name)
