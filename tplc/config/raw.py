"""
Shape of the config file as written by the user, before resolution.

    [general]
    dirs = ["templates"]
    default_syntax = "default"
    whitespace = "preserve"

    [[syntax]]
    name = "sql"
    block_start = "/*%"
    block_end = "%*/"

    [[escaper]]
    path = "myapp.escapers.Latex"
    extensions = ["tex"]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class RawGeneral:
    dirs: Optional[List[str]] = None
    default_syntax: Optional[str] = None
    whitespace: str = "preserve"


@dataclass(frozen=True)
class RawSyntax:
    name: str
    block_start: Optional[str] = None
    block_end: Optional[str] = None
    expr_start: Optional[str] = None
    expr_end: Optional[str] = None
    comment_start: Optional[str] = None
    comment_end: Optional[str] = None

    def overrides(self) -> dict[str, Optional[str]]:
        return {
            "block_start": self.block_start,
            "block_end": self.block_end,
            "expr_start": self.expr_start,
            "expr_end": self.expr_end,
            "comment_start": self.comment_start,
            "comment_end": self.comment_end,
        }


@dataclass(frozen=True)
class RawEscaper:
    path: str
    extensions: List[str]


@dataclass(frozen=True)
class RawConfig:
    general: Optional[RawGeneral] = None
    syntax: List[RawSyntax] = field(default_factory=list)
    escaper: List[RawEscaper] = field(default_factory=list)


__all__ = ["RawGeneral", "RawSyntax", "RawEscaper", "RawConfig"]
