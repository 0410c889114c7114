"""
Expression and pattern nodes produced by the default expression grammar.

The node-level template parser treats these as opaque values; only the
code generator looks inside them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class LitKind(Enum):
    """Literal kinds."""
    STR = "str"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    NONE = "none"


@dataclass(frozen=True)
class Expr:
    """Base class for all expression nodes."""
    # Position in the template source; ignored by equality.
    offset: int = field(default=0, compare=False, kw_only=True)


@dataclass(frozen=True)
class Lit(Expr):
    """Literal value; `value` keeps the source spelling (strings unquoted, escapes kept)."""
    kind: LitKind
    value: str


@dataclass(frozen=True)
class Var(Expr):
    name: str


@dataclass(frozen=True)
class Attr(Expr):
    obj: Expr
    attr: str


@dataclass(frozen=True)
class Index(Expr):
    obj: Expr
    key: Expr


@dataclass(frozen=True)
class Call(Expr):
    func: Expr
    args: Tuple[Expr, ...]


@dataclass(frozen=True)
class Filter(Expr):
    """
    Filter application `input|name(args)`.

    The filtered input is always the first argument. In a filter block the
    innermost input is FilterSource, standing for the rendered block body.
    """
    name: str
    arguments: Tuple[Expr, ...]


@dataclass(frozen=True)
class FilterSource(Expr):
    """Placeholder for the body of a `filter` block."""
    pass


@dataclass(frozen=True)
class Unary(Expr):
    op: str
    operand: Expr


@dataclass(frozen=True)
class BinOp(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Group(Expr):
    inner: Expr


@dataclass(frozen=True)
class TupleExpr(Expr):
    items: Tuple[Expr, ...]


@dataclass(frozen=True)
class Array(Expr):
    items: Tuple[Expr, ...]


# ----------------------------- Targets (patterns) ----------------------------- #

@dataclass(frozen=True)
class Target:
    """Base class for binding targets and match patterns."""
    offset: int = field(default=0, compare=False, kw_only=True)


@dataclass(frozen=True)
class NameTarget(Target):
    name: str


@dataclass(frozen=True)
class Placeholder(Target):
    """The `_` wildcard."""
    pass


@dataclass(frozen=True)
class TupleTarget(Target):
    items: Tuple[Target, ...]


@dataclass(frozen=True)
class LitTarget(Target):
    lit: Lit


@dataclass(frozen=True)
class PathTarget(Target):
    """`Some(x)`, `Color.Red`, `Point(x, _)`; `args` is None without parentheses."""
    path: Tuple[str, ...]
    args: Optional[Tuple[Target, ...]] = None


__all__ = [
    "LitKind",
    "Expr",
    "Lit",
    "Var",
    "Attr",
    "Index",
    "Call",
    "Filter",
    "FilterSource",
    "Unary",
    "BinOp",
    "Group",
    "TupleExpr",
    "Array",
    "Target",
    "NameTarget",
    "Placeholder",
    "TupleTarget",
    "LitTarget",
    "PathTarget",
]
