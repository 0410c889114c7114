"""
Mutable state of a single parse run.

Carries the nesting level and the loop-context depth through the recursive
descent. A fresh state is created for every parse, so concurrent parses
share nothing.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, NoReturn, Optional, Type

from ..expr.parser import MAX_DEPTH
from ..syntax import SyntaxDefinition
from .errors import NestingError, ParseError


class ParserState:
    def __init__(self, source: str, syntax: SyntaxDefinition, path: Optional[str] = None):
        self.source = source
        self.syntax = syntax
        self.path = path
        self.level = 0
        self.loop_depth = 0

    def fail(self, error_cls: Type[ParseError], message: str, offset: int) -> NoReturn:
        raise error_cls(message, self.source, offset, self.path)

    @contextmanager
    def nest(self, offset: int) -> Iterator[None]:
        """Enter one construct level; too deep a nesting is a fatal error."""
        if self.level >= MAX_DEPTH:
            self.fail(
                NestingError,
                "your template code is too deeply nested, or the last expression is too complex",
                offset,
            )
        self.level += 1
        try:
            yield
        finally:
            self.level -= 1

    @contextmanager
    def in_loop(self) -> Iterator[None]:
        self.loop_depth += 1
        try:
            yield
        finally:
            self.loop_depth -= 1

    @property
    def is_in_loop(self) -> bool:
        return self.loop_depth > 0


__all__ = ["ParserState"]
