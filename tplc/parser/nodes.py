"""
AST nodes of a parsed template.

Every node is an immutable dataclass carrying the span of source text it was
parsed from. Whitespace-control marks are recorded per tag edge in a Ws pair
and left for the code generator to apply; the parser never trims literals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..expr.model import Expr, Filter, Target


class Whitespace(str, Enum):
    """
    Whitespace directive.

    Used both as a tag-edge mark (`+`, `-`, `~`) and as the configured
    default policy applied to edges without a mark.
    """
    PRESERVE = "preserve"
    SUPPRESS = "suppress"
    MINIMIZE = "minimize"

    @property
    def mark(self) -> str:
        return _MARKS_BY_VALUE[self]

    @classmethod
    def from_mark(cls, ch: str) -> Optional["Whitespace"]:
        return _VALUES_BY_MARK.get(ch)


_VALUES_BY_MARK = {
    "+": Whitespace.PRESERVE,
    "-": Whitespace.SUPPRESS,
    "~": Whitespace.MINIMIZE,
}
_MARKS_BY_VALUE = {v: k for k, v in _VALUES_BY_MARK.items()}


@dataclass(frozen=True)
class Ws:
    """Marks on the left and right edge of a tag; None defers to the policy."""
    left: Optional[Whitespace] = None
    right: Optional[Whitespace] = None

    def __str__(self) -> str:
        left = self.left.mark if self.left else ""
        right = self.right.mark if self.right else ""
        return f"Ws({left!r}, {right!r})"


@dataclass(frozen=True)
class Span:
    """Half-open range of character offsets into the template source."""
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


NO_SPAN = Span(0, 0)


@dataclass(frozen=True)
class Node:
    """Base class for all template nodes."""
    # Source location; ignored by equality so trees can be compared structurally.
    span: Span = field(default=NO_SPAN, compare=False, kw_only=True)


@dataclass(frozen=True)
class Literal(Node):
    """
    Run of plain template text.

    lws + val + rws reproduces the original text exactly; val has no
    leading or trailing whitespace.
    """
    lws: str
    val: str
    rws: str

    @classmethod
    def split_ws_parts(cls, text: str, *, span: Span = NO_SPAN) -> "Literal":
        stripped_start = text.lstrip()
        lws = text[:len(text) - len(stripped_start)]
        val = stripped_start.rstrip()
        rws = stripped_start[len(val):]
        return cls(lws, val, rws, span=span)

    @property
    def text(self) -> str:
        return self.lws + self.val + self.rws


@dataclass(frozen=True)
class Comment(Node):
    ws: Ws
    content: str


@dataclass(frozen=True)
class Expression(Node):
    """`{{ expr }}` output tag."""
    ws: Ws
    expr: Expr


@dataclass(frozen=True)
class Call(Node):
    """`{% call [scope.]name(args) %}` macro invocation."""
    ws: Ws
    scope: Optional[str]
    name: str
    args: Tuple[Expr, ...] = ()


@dataclass(frozen=True)
class Let(Node):
    """`{% let target [= value] %}`; `set` is an alias."""
    ws: Ws
    var: Target
    val: Optional[Expr] = None


@dataclass(frozen=True)
class CondTest:
    """Condition of an `if`/`elif` arm, optionally binding a pattern (`if let x = ...`)."""
    expr: Expr
    target: Optional[Target] = None


@dataclass(frozen=True)
class Cond(Node):
    """
    One branch of an `if` chain.

    `test` is None for the trailing `else` branch; `ws` holds the marks of
    the tag that opens the branch.
    """
    ws: Ws
    test: Optional[CondTest]
    nodes: Tuple[Node, ...]


@dataclass(frozen=True)
class If(Node):
    """Conditional chain; `ws` holds the marks of the closing `endif` tag."""
    ws: Ws
    branches: Tuple[Cond, ...]


@dataclass(frozen=True)
class Loop(Node):
    """
    `for` loop.

    Marks:
        ws1: left and right edge of the `for` tag
        ws2: left edge of the tag ending the body (`else` or `endfor`),
             right edge of the `else` tag
        ws3: left edge of `endfor` when an `else` is present,
             right edge of `endfor`
    """
    ws1: Ws
    var: Target
    iter: Expr
    cond: Optional[Expr]
    body: Tuple[Node, ...]
    ws2: Ws
    else_nodes: Tuple[Node, ...]
    ws3: Ws


@dataclass(frozen=True)
class When(Node):
    """One `match` arm; the trailing `else` arm has a Placeholder target."""
    ws: Ws
    target: Target
    nodes: Tuple[Node, ...]


@dataclass(frozen=True)
class Match(Node):
    ws1: Ws
    expr: Expr
    arms: Tuple[When, ...]
    ws2: Ws


@dataclass(frozen=True)
class Extends(Node):
    """`{% extends "path" %}`; carries no marks."""
    path: str


@dataclass(frozen=True)
class BlockDef(Node):
    ws1: Ws
    name: str
    nodes: Tuple[Node, ...]
    ws2: Ws


@dataclass(frozen=True)
class Include(Node):
    ws: Ws
    path: str


@dataclass(frozen=True)
class Import(Node):
    """`{% import "path" as scope %}`."""
    ws: Ws
    path: str
    scope: str


@dataclass(frozen=True)
class Macro(Node):
    ws1: Ws
    name: str
    args: Tuple[str, ...]
    nodes: Tuple[Node, ...]
    ws2: Ws


@dataclass(frozen=True)
class Raw(Node):
    """`{% raw %}...{% endraw %}`; the body is kept verbatim."""
    ws1: Ws
    lit: Literal
    ws2: Ws


@dataclass(frozen=True)
class Break(Node):
    ws: Ws


@dataclass(frozen=True)
class Continue(Node):
    ws: Ws


@dataclass(frozen=True)
class FilterBlock(Node):
    """
    `{% filter a(x)|b %}...{% endfilter %}`.

    `filters` is the outermost application; the innermost first argument
    is FilterSource, standing for the rendered body.
    """
    ws1: Ws
    filters: Filter
    nodes: Tuple[Node, ...]
    ws2: Ws


# Ordered node sequence of a template or construct body
TemplateAST = Tuple[Node, ...]


def iter_nodes(nodes: TemplateAST):
    """Yield every node depth-first, descending into construct bodies."""
    for node in nodes:
        yield node
        for child in child_nodes(node):
            yield from iter_nodes((child,))


def child_nodes(node: Node) -> List[Node]:
    if isinstance(node, If):
        return list(node.branches)
    if isinstance(node, Cond):
        return list(node.nodes)
    if isinstance(node, Loop):
        return [*node.body, *node.else_nodes]
    if isinstance(node, Match):
        return list(node.arms)
    if isinstance(node, (When, BlockDef, Macro, FilterBlock)):
        return list(node.nodes)
    return []


def format_ast_tree(ast: TemplateAST, indent: int = 0) -> str:
    """Render the AST as an indented tree for debugging."""
    lines = []
    prefix = "  " * indent

    for node in ast:
        if isinstance(node, Literal):
            text_preview = node.text[:50] + "..." if len(node.text) > 50 else node.text
            lines.append(f"{prefix}Literal({text_preview!r})")
        elif isinstance(node, Comment):
            lines.append(f"{prefix}Comment({node.ws})")
        elif isinstance(node, Expression):
            lines.append(f"{prefix}Expression({node.expr!r}, {node.ws})")
        elif isinstance(node, If):
            lines.append(f"{prefix}If({node.ws})")
        elif isinstance(node, Cond):
            label = "else" if node.test is None else repr(node.test.expr)
            lines.append(f"{prefix}Cond({label}, {node.ws})")
        elif isinstance(node, Loop):
            lines.append(f"{prefix}Loop({node.var!r} in {node.iter!r}, {node.ws1}, {node.ws2}, {node.ws3})")
            lines.append(format_ast_tree(node.body, indent + 1))
            if node.else_nodes:
                lines.append(f"{prefix}else:")
                lines.append(format_ast_tree(node.else_nodes, indent + 1))
            continue
        elif isinstance(node, Match):
            lines.append(f"{prefix}Match({node.expr!r}, {node.ws1}, {node.ws2})")
        elif isinstance(node, When):
            lines.append(f"{prefix}When({node.target!r}, {node.ws})")
        elif isinstance(node, BlockDef):
            lines.append(f"{prefix}BlockDef({node.name!r}, {node.ws1}, {node.ws2})")
        elif isinstance(node, Macro):
            lines.append(f"{prefix}Macro({node.name!r}, args={list(node.args)}, {node.ws1}, {node.ws2})")
        elif isinstance(node, FilterBlock):
            lines.append(f"{prefix}FilterBlock({node.filters.name!r}, {node.ws1}, {node.ws2})")
        elif isinstance(node, Raw):
            lines.append(f"{prefix}Raw({node.lit.text!r}, {node.ws1}, {node.ws2})")
        else:
            lines.append(f"{prefix}{node!r}")

        children = child_nodes(node)
        if children:
            lines.append(format_ast_tree(tuple(children), indent + 1))

    return "\n".join(line for line in lines if line)


__all__ = [
    "Whitespace",
    "Ws",
    "Span",
    "Node",
    "Literal",
    "Comment",
    "Expression",
    "Call",
    "Let",
    "CondTest",
    "Cond",
    "If",
    "Loop",
    "When",
    "Match",
    "Extends",
    "BlockDef",
    "Include",
    "Import",
    "Macro",
    "Raw",
    "Break",
    "Continue",
    "FilterBlock",
    "TemplateAST",
    "iter_nodes",
    "child_nodes",
    "format_ast_tree",
]
