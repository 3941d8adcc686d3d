"""
Custom exceptions for GameSheet.
"""

from typing import List, Optional, Sequence


class SheetError(Exception):
    """Base exception for all GameSheet errors."""
    pass


class UnknownEntryError(SheetError):
    """Raised when an operation names an entry that doesn't exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown entry '{name}'")


class DuplicateNameError(SheetError):
    """Raised when creating an entry whose name is already taken."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entry '{name}' already exists")


class UnknownFunctionError(SheetError):
    """Raised when a script calls a function that isn't in the prelude."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown function '{name}'")


class CycleError(SheetError):
    """
    Raised when a read finds its own entry already being computed.

    The path runs from the entry that was found mid-evaluation back to
    itself, e.g. ['a', 'b', 'a'].

    Cycles are never cached: every entry involved stays stale, so the
    next read tries again and succeeds once a write breaks the cycle.
    """

    def __init__(self, path: Sequence[str]):
        self.path: List[str] = list(path)
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.path)}")


class ParseError(SheetError):
    """Raised when an entry's (or the prelude's) script text doesn't parse."""

    def __init__(self, name: str, detail: str):
        self.name = name
        self.detail = detail
        super().__init__(f"Error parsing '{name}': {detail}")


class EvaluationError(SheetError):
    """Raised when there's an error while running an entry's script."""

    def __init__(self, name: str, original_error: Optional[Exception]):
        self.name = name
        self.original_error = original_error
        super().__init__(f"Error evaluating '{name}': {original_error}")


class SheetFormatError(SheetError):
    """Raised when a sheet document is not shaped like a sheet."""
    pass
