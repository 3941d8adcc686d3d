"""
Command line viewer for sheet files.

    python -m gamesheet base.gamesheet hard_mode.gamesheet --filter enemy
    python -m gamesheet base.gamesheet --get enemy_health
    python -m gamesheet base.gamesheet --deps

Files are stacked in the order given, later files overriding earlier ones.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, List, Optional, Sequence, TextIO

from .exceptions import SheetError
from .layers import SheetStack
from .loader import load
from .value import thaw

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gamesheet",
        description="Evaluate and inspect GameSheet files.",
    )
    parser.add_argument(
        "files", nargs="+",
        help="sheet files, in ascending order of importance",
    )
    parser.add_argument("--filter", default="", help="only show entries whose name contains TEXT")
    parser.add_argument("--get", metavar="NAME", help="print the value of a single entry")
    parser.add_argument("--deps", action="store_true", help="also list what each entry read")
    parser.add_argument("--validate", action="store_true", help="check that referenced entries exist")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def format_value(value: Any) -> str:
    return repr(thaw(value))


def format_error(error: BaseException) -> str:
    return f"<{type(error).__name__}: {error}>"


def main(argv: Optional[Sequence[str]] = None, out: Optional[TextIO] = None) -> int:
    """Run the command line. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    out = out if out is not None else sys.stdout

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        stack = SheetStack(load(path, validate=args.validate) for path in args.files)
    except (OSError, SheetError) as e:
        logger.error("Could not load sheets: %s", e)
        return 2

    if args.get is not None:
        try:
            print(format_value(stack.read(args.get)), file=out)
        except (SheetError, RecursionError) as e:
            logger.error("%s", e)
            return 1
        return 0

    names: List[str] = sorted(name for name in stack.names() if args.filter in name)
    failed = False
    for name in names:
        try:
            shown = format_value(stack.read(name))
        except (SheetError, RecursionError) as e:
            shown = format_error(e)
            failed = True
        print(f"{name} = {shown}", file=out)
        if args.deps:
            deps = stack.dependencies(name)
            if deps:
                print(f"    reads: {', '.join(deps)}", file=out)

    return 1 if failed else 0
