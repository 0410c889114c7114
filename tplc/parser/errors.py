"""
Template parse errors.

Every error records the offending offset and renders a pointer into the
source: row and column (both 1-based) plus the source line with a caret.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import TplcUserError

DEFAULT_PATH = "<string>"


@dataclass(frozen=True)
class ErrorInfo:
    row: int
    column: int
    excerpt: str


def generate_error_info(source: str, offset: int) -> ErrorInfo:
    """Locate offset in source and build a one-line excerpt with a caret under it."""
    offset = max(0, min(offset, len(source)))
    line_start = source.rfind("\n", 0, offset) + 1
    line_end = source.find("\n", offset)
    if line_end < 0:
        line_end = len(source)
    row = source.count("\n", 0, offset) + 1
    column = offset - line_start + 1
    line = source[line_start:line_end].rstrip("\r")
    excerpt = f"{line}\n{' ' * (column - 1)}^"
    return ErrorInfo(row=row, column=column, excerpt=excerpt)


class ParseError(TplcUserError):
    """Syntax error in a template."""

    def __init__(self, message: str, source: str, offset: int, path: Optional[str] = None):
        self.message = message
        self.offset = offset
        self.path = path
        info = generate_error_info(source, offset)
        self.row = info.row
        self.column = info.column
        self.excerpt = info.excerpt
        super().__init__(message)

    def __str__(self) -> str:
        return (
            f"{self.message}\n"
            f"  --> {self.path or DEFAULT_PATH}:{self.row}:{self.column}\n"
            f"{self.excerpt}"
        )


class UnclosedError(ParseError):
    """A construct or tag did not reach its closing delimiter or end tag."""
    pass


class UnknownTagError(ParseError):
    pass


class NameMismatchError(ParseError):
    """Name after `endblock`/`endmacro` differs from the opening name."""
    pass


class LoopContextError(ParseError):
    """`break`/`continue` outside a `for` loop body."""
    pass


class ReservedNameError(ParseError):
    pass


class NestingError(ParseError):
    pass


__all__ = [
    "ErrorInfo",
    "generate_error_info",
    "ParseError",
    "UnclosedError",
    "UnknownTagError",
    "NameMismatchError",
    "LoopContextError",
    "ReservedNameError",
    "NestingError",
]
