"""
On-demand lexer for template expressions.

Unlike a whole-input tokenizer, tokens are read one at a time at an explicit
offset: an expression is embedded in template text and ends wherever the
grammar stops, so the rest of the template must never be tokenized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

WS_RE = re.compile(r"\s*")
IDENT_RE = re.compile(r"[^\W\d]\w*")
STR_RE = re.compile(r'"((?:\\.|[^"\\])*)"|\'((?:\\.|[^\'\\])*)\'', re.DOTALL)


@dataclass(frozen=True)
class Token:
    """
    Expression token.

    Attributes:
        type: STRING, FLOAT, INT, IDENT, OP, EOF or UNKNOWN
        value: Token text (string contents without quotes)
        position: Offset of the first character
        end: Offset just past the token
    """
    type: str
    value: str
    position: int
    end: int

    def __repr__(self):
        return f"Token({self.type}, '{self.value}', pos={self.position})"


class ExprLexer:
    """
    Reads a single token at a given offset.

    Supported tokens:
    - STRING: "..." or '...' with backslash escapes
    - FLOAT / INT: decimal numbers
    - IDENT: identifiers and word operators (and, or, not, in)
    - OP: punctuation and symbolic operators
    """

    # Order matters: longer operators first.
    TOKEN_SPECS = [
        (r'\d+\.\d+', 'FLOAT'),
        (r'\d+', 'INT'),
        (r'==|!=|<=|>=|&&|\|\||[-+*/%<>!|.,()\[\]=]', 'OP'),
    ]

    def __init__(self):
        self._compiled_patterns = [
            (re.compile(pattern), token_type)
            for pattern, token_type in self.TOKEN_SPECS
        ]

    def token_at(self, text: str, position: int) -> Token:
        """
        Skip whitespace and return the token starting there.

        Never raises: an unrecognized character yields an UNKNOWN token
        and the caller decides whether that is an error.
        """
        position = skip_ws(text, position)
        if position >= len(text):
            return Token('EOF', '', position, position)

        match = STR_RE.match(text, position)
        if match:
            body = match.group(1) if match.group(1) is not None else match.group(2)
            return Token('STRING', body, position, match.end())

        match = IDENT_RE.match(text, position)
        if match:
            return Token('IDENT', match.group(0), position, match.end())

        for pattern, token_type in self._compiled_patterns:
            match = pattern.match(text, position)
            if match:
                return Token(token_type, match.group(0), position, match.end())

        return Token('UNKNOWN', text[position], position, position + 1)


def skip_ws(text: str, position: int) -> int:
    return WS_RE.match(text, position).end()


def identifier_at(text: str, position: int) -> Optional[tuple[str, int]]:
    """Identifier at exactly `position` (no whitespace skipping)."""
    match = IDENT_RE.match(text, position)
    if match is None:
        return None
    return match.group(0), match.end()


def str_lit_at(text: str, position: int) -> Optional[tuple[str, int]]:
    """String literal at exactly `position`; returns its contents without quotes."""
    match = STR_RE.match(text, position)
    if match is None:
        return None
    body = match.group(1) if match.group(1) is not None else match.group(2)
    return body, match.end()


__all__ = ["Token", "ExprLexer", "skip_ws", "identifier_at", "str_lit_at"]
