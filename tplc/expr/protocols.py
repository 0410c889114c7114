"""
Interface between the node-level template parser and the expression grammar.

The template parser only threads the nesting level through these calls and
never inspects the returned values.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class ExpressionGrammar(Protocol):
    """
    Expression/pattern sub-grammar invoked for tag payloads.

    Every method receives the full template text, the offset to start at and
    the current nesting level, and returns (value, offset after the value).
    Syntax errors are raised as ExpressionError(message, position).
    """

    def parse_expr(self, text: str, pos: int, level: int) -> Tuple[Any, int]:
        """
        Parse one expression starting at pos (leading whitespace allowed).

        Raises:
            ExpressionError: If no valid expression starts at pos
        """
        ...

    def parse_target(self, text: str, pos: int, level: int) -> Tuple[Any, int]:
        """Parse a binding target / match pattern."""
        ...

    def parse_arguments(self, text: str, pos: int, level: int) -> Tuple[Tuple[Any, ...], int]:
        """Parse a parenthesized, comma-separated argument list."""
        ...

    def parse_filter(self, text: str, pos: int, level: int) -> Optional[Tuple[Tuple[str, Optional[Tuple[Any, ...]]], int]]:
        """
        Parse one `|name(args)` filter application.

        Returns:
            ((name, arguments or None), new offset), or None if no filter starts at pos
        """
        ...


__all__ = ["ExpressionGrammar"]
