"""
Default expression and pattern grammar used inside template tags.
"""

from __future__ import annotations

from .model import (
    Expr,
    Filter,
    FilterSource,
    Lit,
    LitKind,
    Target,
    Var,
)
from .parser import ExprParser, ExpressionDepthError, ExpressionError, MAX_DEPTH
from .protocols import ExpressionGrammar

__all__ = [
    "Expr",
    "Filter",
    "FilterSource",
    "Lit",
    "LitKind",
    "Target",
    "Var",
    "ExprParser",
    "ExpressionError",
    "ExpressionDepthError",
    "ExpressionGrammar",
    "MAX_DEPTH",
]
