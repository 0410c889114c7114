"""
Template parser: delimiter-driven recursive descent into an immutable AST.
"""

from __future__ import annotations

from .errors import (
    ErrorInfo,
    LoopContextError,
    NameMismatchError,
    NestingError,
    ParseError,
    ReservedNameError,
    UnclosedError,
    UnknownTagError,
    generate_error_info,
)
from .keywords import is_reserved
from .nodes import *  # noqa: F401,F403
from .nodes import __all__ as _nodes_all
from .parsed import ParsedTemplate
from .parser import NodeParser

__all__ = [
    "ErrorInfo",
    "LoopContextError",
    "NameMismatchError",
    "NestingError",
    "ParseError",
    "ReservedNameError",
    "UnclosedError",
    "UnknownTagError",
    "generate_error_info",
    "is_reserved",
    "ParsedTemplate",
    "NodeParser",
    *_nodes_all,
]
