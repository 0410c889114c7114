"""
Parsed template: the source text together with its node sequence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..syntax import SyntaxDefinition
from .errors import ErrorInfo, generate_error_info
from .nodes import Span, TemplateAST, format_ast_tree
from .parser import NodeParser


@dataclass(frozen=True, eq=False)
class ParsedTemplate:
    """
    Immutable parse result shared by every caller asking for the same key.

    Compared by identity: two parses of the same key inside one cache are
    the very same object.
    """
    source: str
    path: Optional[str]
    nodes: TemplateAST = field(repr=False)

    @classmethod
    def parse(
        cls,
        source: str,
        path: Optional[str],
        syntax: SyntaxDefinition,
        parser: Optional[NodeParser] = None,
    ) -> "ParsedTemplate":
        parser = parser or NodeParser(syntax)
        return cls(source, path, parser.parse(source, path))

    def span_text(self, span: Span) -> str:
        return self.source[span.start:span.end]

    def error_info(self, span: Span) -> ErrorInfo:
        return generate_error_info(self.source, span.start)

    def format_tree(self) -> str:
        return format_ast_tree(self.nodes)


__all__ = ["ParsedTemplate"]
