"""
Delimiter syntax definitions.

A syntax is the set of six delimiter strings the parser uses to recognize
block tags, expression tags and comments. Syntaxes are built once from
optional overrides on top of the built-in defaults and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Mapping, Optional

from .errors import TplcUserError

DEFAULT_BLOCK_START = "{%"
DEFAULT_BLOCK_END = "%}"
DEFAULT_EXPR_START = "{{"
DEFAULT_EXPR_END = "}}"
DEFAULT_COMMENT_START = "{#"
DEFAULT_COMMENT_END = "#}"

MIN_DELIMITER_LEN = 2


class SyntaxDefinitionError(TplcUserError):
    """Malformed delimiter definition."""

    def __init__(self, message: str, delimiters: tuple[str, ...] = ()):
        self.message = message
        self.delimiters = delimiters
        self.config_path: Optional[str] = None
        super().__init__(message)

    def with_config_path(self, config_path: Optional[str]) -> "SyntaxDefinitionError":
        """Attach the originating config file to the error message."""
        if config_path and self.config_path is None:
            self.config_path = config_path
            self.args = (f"{self.message}\n --> {config_path}",)
        return self


class DelimiterTooShortError(SyntaxDefinitionError):
    def __init__(self, delimiter: str):
        super().__init__(
            f"delimiters must be at least two characters long: {delimiter!r}",
            (delimiter,),
        )


class DelimiterWhitespaceError(SyntaxDefinitionError):
    def __init__(self, delimiter: str):
        super().__init__(
            f"delimiters may not contain white spaces: {delimiter!r}",
            (delimiter,),
        )


class AmbiguousDelimiterError(SyntaxDefinitionError):
    def __init__(self, first: str, second: str):
        super().__init__(
            f"a delimiter may not be the prefix of another delimiter: {first!r} vs {second!r}",
            (first, second),
        )


@dataclass(frozen=True)
class SyntaxDefinition:
    """Six immutable delimiter strings (block/expression/comment × start/end)."""
    block_start: str = DEFAULT_BLOCK_START
    block_end: str = DEFAULT_BLOCK_END
    expr_start: str = DEFAULT_EXPR_START
    expr_end: str = DEFAULT_EXPR_END
    comment_start: str = DEFAULT_COMMENT_START
    comment_end: str = DEFAULT_COMMENT_END

    @classmethod
    def build(cls, overrides: Optional[Mapping[str, Optional[str]]] = None) -> "SyntaxDefinition":
        """
        Apply overrides onto the defaults and validate the result.

        Args:
            overrides: delimiter name → value; None values keep the default

        Returns:
            Validated syntax definition

        Raises:
            SyntaxDefinitionError: too short, contains whitespace, or
                two opening delimiters are prefixes of one another
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for name, value in (overrides or {}).items():
            if name not in known:
                raise SyntaxDefinitionError(f"unknown delimiter {name!r}")
            if value is not None:
                values[name] = value
        syntax = cls(**values)
        syntax.validate()
        return syntax

    def validate(self) -> None:
        for delimiter in self.delimiters():
            if len(delimiter) < MIN_DELIMITER_LEN:
                raise DelimiterTooShortError(delimiter)
            if any(ch.isspace() for ch in delimiter):
                raise DelimiterWhitespaceError(delimiter)

        # Only opening delimiters compete at the same offset.
        for first, second in (
            (self.block_start, self.expr_start),
            (self.block_start, self.comment_start),
            (self.expr_start, self.comment_start),
        ):
            if first.startswith(second) or second.startswith(first):
                raise AmbiguousDelimiterError(first, second)

    def delimiters(self) -> tuple[str, str, str, str, str, str]:
        return (
            self.block_start,
            self.block_end,
            self.expr_start,
            self.expr_end,
            self.comment_start,
            self.comment_end,
        )

    def opening_delimiters(self) -> tuple[str, str, str]:
        return self.block_start, self.comment_start, self.expr_start


DEFAULT_SYNTAX = SyntaxDefinition()


__all__ = [
    "SyntaxDefinition",
    "SyntaxDefinitionError",
    "DelimiterTooShortError",
    "DelimiterWhitespaceError",
    "AmbiguousDelimiterError",
    "DEFAULT_SYNTAX",
]
