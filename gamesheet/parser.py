"""
Parsing and checking of entry scripts.

Scripts are written in a small subset of Python: expressions, local
assignments, if/for blocks and calls to named functions. The source is
parsed with the standard ast module and then checked by ScriptValidator,
which rejects anything outside the subset (imports, attribute access,
lambdas, while loops, ...) so the interpreter never sees it.

This module also offers find_references(), a static scan for the entry
names a script mentions. Like any static scan it can't see through
branches that are never taken or names computed at runtime; the sheet
therefore records real dependencies while evaluating and only uses this
scan for load-time sanity checks.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import FrozenSet, List, Set

from .exceptions import ParseError

# The name scripts use to read an entry by a computed name: g("speed")
LOOKUP_FUNCTION = "g"

_ALLOWED_NODES = (
    # Statements
    ast.Module, ast.Expr, ast.Assign, ast.AugAssign, ast.If, ast.For,
    ast.Break, ast.Continue, ast.Pass, ast.Return, ast.FunctionDef,
    ast.arguments, ast.arg,
    # Expressions
    ast.Name, ast.Constant, ast.BinOp, ast.UnaryOp, ast.BoolOp, ast.Compare,
    ast.IfExp, ast.Call, ast.keyword, ast.List, ast.Tuple, ast.Dict,
    ast.Subscript, ast.Slice, ast.JoinedStr, ast.FormattedValue,
    ast.ListComp, ast.comprehension,
    # Contexts
    ast.Load, ast.Store,
    # Operators
    ast.Add, ast.Sub, ast.Mult, ast.Div, ast.FloorDiv, ast.Mod, ast.Pow,
    ast.UAdd, ast.USub, ast.Not, ast.And, ast.Or,
    ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE,
    ast.In, ast.NotIn, ast.Is, ast.IsNot,
)


@dataclass(frozen=True)
class ParsedScript:
    """A checked script, ready for the interpreter."""
    filename: str
    source: str = field(repr=False)
    body: List[ast.stmt] = field(repr=False, compare=False)


class ScriptValidator(ast.NodeVisitor):
    """
    AST visitor that rejects constructs outside the script subset.

    Raises ParseError on the first problem found.
    """

    def __init__(self, filename: str, allow_functions: bool = False):
        self.filename = filename
        self.allow_functions = allow_functions
        self._loop_depth = 0
        self._function_depth = 0

    def fail(self, node: ast.AST, message: str) -> None:
        line = getattr(node, "lineno", None)
        where = f"line {line}: " if line is not None else ""
        raise ParseError(self.filename, where + message)

    def generic_visit(self, node: ast.AST) -> None:
        if not isinstance(node, _ALLOWED_NODES):
            self.fail(node, f"{type(node).__name__} is not allowed in scripts")
        super().generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        if not self.allow_functions or self._function_depth or self._loop_depth:
            self.fail(node, "functions can only be defined at the top of the prelude")
        if node.decorator_list or node.returns:
            self.fail(node, "function decorators and annotations are not supported")
        args = node.args
        if (args.vararg or args.kwarg or args.kwonlyargs or args.defaults
                or getattr(args, "posonlyargs", None)):
            self.fail(node, "prelude functions only take plain positional parameters")

        self._function_depth += 1
        # Loops don't reach into the function body
        loop_depth, self._loop_depth = self._loop_depth, 0
        for statement in node.body:
            self.visit(statement)
        self._loop_depth = loop_depth
        self._function_depth -= 1

    def visit_For(self, node: ast.For) -> None:
        self._check_target(node.target)
        self.visit(node.iter)
        self._loop_depth += 1
        for statement in node.body:
            self.visit(statement)
        self._loop_depth -= 1
        for statement in node.orelse:
            self.visit(statement)

    def visit_Break(self, node: ast.Break) -> None:
        if not self._loop_depth:
            self.fail(node, "'break' outside loop")

    def visit_Continue(self, node: ast.Continue) -> None:
        if not self._loop_depth:
            self.fail(node, "'continue' outside loop")

    def visit_Assign(self, node: ast.Assign) -> None:
        for target in node.targets:
            self._check_target(target)
        self.visit(node.value)

    def visit_AugAssign(self, node: ast.AugAssign) -> None:
        if not isinstance(node.target, ast.Name):
            self.fail(node, "augmented assignment needs a plain name")
        self.generic_visit(node)

    def visit_comprehension(self, node: ast.comprehension) -> None:
        if node.is_async:
            self.fail(node, "async comprehensions are not allowed in scripts")
        self._check_target(node.target)
        self.visit(node.iter)
        for condition in node.ifs:
            self.visit(condition)

    def visit_Call(self, node: ast.Call) -> None:
        if not isinstance(node.func, ast.Name):
            self.fail(node, "only named functions can be called")
        for keyword in node.keywords:
            if keyword.arg is None:
                self.fail(node, "'**' arguments are not supported")
        self.generic_visit(node)

    def _check_target(self, target: ast.AST) -> None:
        """Assignment targets are names, or tuples/lists of names."""
        if isinstance(target, ast.Name):
            return
        if isinstance(target, (ast.Tuple, ast.List)):
            for element in target.elts:
                self._check_target(element)
            return
        self.fail(target, "can only assign to local names")


def _parse_tree(source: str, filename: str) -> ast.Module:
    if not isinstance(source, str):
        raise ParseError(filename, f"script must be text, got {type(source).__name__}")
    try:
        return ast.parse(source, filename=filename, mode="exec")
    except SyntaxError as e:
        raise ParseError(filename, f"line {e.lineno}: {e.msg}") from e
    except ValueError as e:
        # e.g. source containing null bytes
        raise ParseError(filename, str(e)) from e


def parse_script(source: str, filename: str = "<script>") -> ParsedScript:
    """
    Parse and check an entry script.

    Raises ParseError (carrying `filename` as the name) if the text is not
    valid Python or uses something outside the script subset.
    """
    tree = _parse_tree(source, filename)
    ScriptValidator(filename).visit(tree)
    return ParsedScript(filename=filename, source=source, body=tree.body)


def parse_function_defs(source: str, filename: str = "<prelude>") -> List[ast.FunctionDef]:
    """Parse prelude source, which may only contain function definitions."""
    tree = _parse_tree(source, filename)
    validator = ScriptValidator(filename, allow_functions=True)
    for statement in tree.body:
        if not isinstance(statement, ast.FunctionDef):
            validator.fail(statement, "the prelude may only contain function definitions")
    validator.visit(tree)
    return list(tree.body)


class ReferenceVisitor(ast.NodeVisitor):
    """
    AST visitor that collects the entry names a script mentions.

    Looks for:
    1. Free names - loaded but never assigned locally
    2. g('name') - lookups by constant name
    """

    def __init__(self):
        self.loaded: Set[str] = set()
        self.assigned: Set[str] = set()
        self.called: Set[str] = set()
        self.looked_up: Set[str] = set()

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Store):
            self.assigned.add(node.id)
        else:
            self.loaded.add(node.id)

    def visit_Call(self, node: ast.Call) -> None:
        if isinstance(node.func, ast.Name):
            self.called.add(node.func.id)
            if node.func.id == LOOKUP_FUNCTION and node.args:
                first = node.args[0]
                if isinstance(first, ast.Constant) and isinstance(first.value, str):
                    self.looked_up.add(first.value)
            # Don't count the function name as a read
            for arg in node.args:
                self.visit(arg)
            for keyword in node.keywords:
                self.visit(keyword)
            return
        self.generic_visit(node)

    @property
    def references(self) -> FrozenSet[str]:
        return frozenset((self.loaded - self.assigned) | self.looked_up)


def find_references(source: str, filename: str = "<script>") -> FrozenSet[str]:
    """
    Find the entry names a script mentions.

    Args:
        source: The script text

    Returns:
        A frozenset of entry names

    Raises ParseError if the script doesn't parse.
    """
    tree = _parse_tree(source, filename)
    visitor = ReferenceVisitor()
    visitor.visit(tree)
    return visitor.references

