"""
Recursive-descent parser for template source.

Works directly on the source string with explicit offsets. At every offset
the parser tries, in order: a literal text run, a comment, an expression tag
and a block tag. Once an opening delimiter (and, for block tags, the keyword)
is recognized the parser is committed: any later failure is raised as a
ParseError and never retried as another construct.

Block tags that continue or end an enclosing construct (`elif`, `endfor`,
...) stop the current node sequence without being consumed; the construct
that owns the sequence then checks that the stop is the tag it expects.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..expr.lexer import identifier_at, skip_ws, str_lit_at
from ..expr.model import Filter, FilterSource, Placeholder
from ..expr.parser import ExprParser, ExpressionDepthError, ExpressionError
from ..expr.protocols import ExpressionGrammar
from ..syntax import SyntaxDefinition
from .errors import (
    LoopContextError,
    NameMismatchError,
    NestingError,
    ParseError,
    ReservedNameError,
    UnclosedError,
    UnknownTagError,
)
from .keywords import is_reserved
from .nodes import (
    BlockDef,
    Break,
    Call,
    Comment,
    Cond,
    CondTest,
    Continue,
    Expression,
    Extends,
    FilterBlock,
    If,
    Import,
    Include,
    Let,
    Literal,
    Loop,
    Macro,
    Match,
    Node,
    Raw,
    Span,
    TemplateAST,
    When,
    Whitespace,
    Ws,
)
from .state import ParserState

logger = logging.getLogger(__name__)

# Keywords that continue or terminate an enclosing construct.
CONTINUATION_KEYWORDS = frozenset({
    "elif",
    "else",
    "when",
    "endif",
    "endfor",
    "endmatch",
    "endblock",
    "endmacro",
    "endfilter",
    "endraw",
})

NodeResult = Tuple[Node, int]
# Node sequence, offset after it, and the continuation keyword that stopped it (None at end of input)
ManyResult = Tuple[TemplateAST, int, Optional[str]]


class NodeParser:
    """
    Template parser for one delimiter syntax.

    Holds no per-parse state, so a single instance may be used from several
    threads; everything that changes during a parse lives in ParserState.
    """

    def __init__(self, syntax: SyntaxDefinition, grammar: Optional[ExpressionGrammar] = None):
        self.syntax = syntax
        self.grammar: ExpressionGrammar = grammar or ExprParser()
        self._handlers: Dict[str, Callable[[ParserState, int, Optional[Whitespace], int], NodeResult]] = {
            "call": self._call,
            "let": self._let,
            "set": self._let,
            "if": self._if,
            "for": self._for,
            "match": self._match,
            "extends": self._extends,
            "include": self._include,
            "import": self._import,
            "block": self._block_def,
            "macro": self._macro,
            "raw": self._raw,
            "break": self._break,
            "continue": self._continue,
            "filter": self._filter_block,
        }

    def parse(self, source: str, path: Optional[str] = None) -> TemplateAST:
        """
        Parse a whole template.

        Args:
            source: Template text
            path: Origin file, used only for error messages

        Returns:
            Ordered node sequence covering the entire input

        Raises:
            ParseError: On the first syntax error
        """
        logger.debug("Parsing template %s (%d chars)", path or "<string>", len(source))
        s = ParserState(source, self.syntax, path)
        nodes, pos, stop = self._many(s, 0)
        if stop is not None:
            s.fail(ParseError, f"unexpected `{stop}` tag without a matching opening tag", pos)
        return nodes

    # ------------------------------ sequences ------------------------------ #

    def _many(self, s: ParserState, pos: int) -> ManyResult:
        text = s.source
        syntax = s.syntax
        nodes: List[Node] = []

        while pos < len(text):
            if text.startswith(syntax.comment_start, pos):
                node, pos = self._comment(s, pos)
            elif text.startswith(syntax.expr_start, pos):
                node, pos = self._expression(s, pos)
            elif text.startswith(syntax.block_start, pos):
                keyword = self._peek_keyword(s, pos)
                if keyword in CONTINUATION_KEYWORDS:
                    return tuple(nodes), pos, keyword
                node, pos = self._block_tag(s, pos, keyword)
            else:
                node, pos = self._literal(s, pos)
            nodes.append(node)

        return tuple(nodes), pos, None

    def _literal(self, s: ParserState, pos: int) -> NodeResult:
        text = s.source
        end = len(text)
        for delimiter in s.syntax.opening_delimiters():
            found = text.find(delimiter, pos)
            if 0 <= found < end:
                end = found
        if end == pos:
            s.fail(ParseError, "expected text, found an opening delimiter", pos)
        return Literal.split_ws_parts(text[pos:end], span=Span(pos, end)), end

    # ------------------------------ comments ------------------------------ #

    def _comment(self, s: ParserState, pos: int) -> NodeResult:
        text = s.source
        start_delim = s.syntax.comment_start
        end_delim = s.syntax.comment_end

        left, body_start = self._mark(s, pos + len(start_delim))
        p = body_start
        depth = 0
        while True:
            next_close = text.find(end_delim, p)
            if next_close < 0:
                s.fail(UnclosedError, f"unclosed comment, missing {end_delim!r}", pos)
            next_open = text.find(start_delim, p)
            if 0 <= next_open <= next_close:
                depth += 1
                p = next_open + len(start_delim)
                continue
            if depth == 0:
                break
            depth -= 1
            p = next_close + len(end_delim)

        content = text[body_start:next_close]
        right = Whitespace.from_mark(content[-1:]) if content else None
        if right is not None:
            content = content[:-1]
        end = next_close + len(end_delim)
        return Comment(Ws(left, right), content, span=Span(pos, end)), end

    # ----------------------------- expressions ----------------------------- #

    def _expression(self, s: ParserState, pos: int) -> NodeResult:
        left, p = self._mark(s, pos + len(s.syntax.expr_start))
        expr, p = self._parse_expr(s, p)
        right, p = self._close_mark(s, p)
        end = self._expect_close(s, p, s.syntax.expr_end, "expression", pos)
        return Expression(Ws(left, right), expr, span=Span(pos, end)), end

    # ------------------------------ block tags ----------------------------- #

    def _peek_keyword(self, s: ParserState, pos: int) -> Optional[str]:
        _, p = self._mark(s, pos + len(s.syntax.block_start))
        found = identifier_at(s.source, skip_ws(s.source, p))
        return found[0] if found else None

    def _block_tag(self, s: ParserState, pos: int, keyword: Optional[str]) -> NodeResult:
        handler = self._handlers.get(keyword) if keyword else None
        if handler is None:
            if keyword is None:
                s.fail(UnknownTagError, "expected a tag name after the block delimiter", pos)
            s.fail(UnknownTagError, f"unknown tag `{keyword}`", pos)

        logger.debug("Block tag %r at %d", keyword, pos)
        left, p = self._mark(s, pos + len(s.syntax.block_start))
        p = self._expect_keyword(s, p, keyword)
        with s.nest(pos):
            node, p = handler(s, pos, left, p)
        end = self._expect_close(s, p, s.syntax.block_end, "block", pos)
        return dataclasses.replace(node, span=Span(pos, end)), end

    def _call(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        text = s.source
        scope = None
        name, p = self._identifier(s, p, "macro name")
        if text.startswith(".", p):
            scope = name
            name, p = self._identifier(s, p + 1, "macro name")
        args: tuple = ()
        if text.startswith("(", skip_ws(text, p)):
            args, p = self._parse_arguments(s, p)
        right, p = self._close_mark(s, p)
        return Call(Ws(left, right), scope, name, tuple(args)), p

    def _let(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        target, p = self._parse_target(s, p)
        value = None
        eq = self._assign(s, p)
        if eq is not None:
            value, p = self._parse_expr(s, eq)
        right, p = self._close_mark(s, p)
        return Let(Ws(left, right), target, value), p

    def _if(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        test, p = self._cond_test(s, p)
        right, p = self._tag_end(s, p, start)
        body, body_end, stop = self._many(s, p)
        branches = [Cond(Ws(left, right), test, body, span=Span(start, body_end))]
        p = body_end

        while stop in ("elif", "else"):
            tag_start = p
            if branches[-1].test is None:
                self._unexpected_stop(s, "if", "endif", stop, p)
            tag_left, p = self._mark(s, p + len(s.syntax.block_start))
            p = self._expect_keyword(s, p, stop)
            if stop == "elif" or self._keyword(s, p, "if") is not None:
                if stop == "else":
                    p = self._keyword(s, p, "if")
                branch_test, p = self._cond_test(s, p)
            else:
                branch_test = None
            tag_right, p = self._tag_end(s, p, tag_start)
            body, p, stop = self._many(s, p)
            branches.append(Cond(Ws(tag_left, tag_right), branch_test, body, span=Span(tag_start, p)))

        if stop != "endif":
            self._unexpected_stop(s, "if", "endif", stop, p if stop else start)
        end_left, p = self._mark(s, p + len(s.syntax.block_start))
        p = self._expect_keyword(s, p, "endif")
        end_right, p = self._close_mark(s, p)
        return If(Ws(end_left, end_right), tuple(branches)), p

    def _cond_test(self, s: ParserState, p: int) -> Tuple[CondTest, int]:
        target = None
        after = self._keyword(s, p, "let")
        if after is None:
            after = self._keyword(s, p, "set")
        if after is not None:
            target, p = self._parse_target(s, after)
            eq = self._assign(s, p)
            if eq is None:
                s.fail(ParseError, "expected `=` after the pattern", skip_ws(s.source, p))
            p = eq
        expr, p = self._parse_expr(s, p)
        return CondTest(expr, target), p

    def _for(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        var, p = self._parse_target(s, p)
        after_in = self._keyword(s, p, "in")
        if after_in is None:
            s.fail(ParseError, "expected `in` after the loop variable", skip_ws(s.source, p))
        iterable, p = self._parse_expr(s, after_in)
        cond = None
        after_if = self._keyword(s, p, "if")
        if after_if is not None:
            cond, p = self._parse_expr(s, after_if)
        right, p = self._tag_end(s, p, start)

        with s.in_loop():
            body, p, stop = self._many(s, p)

        if stop == "else":
            else_start = p
            else_left, p = self._mark(s, p + len(s.syntax.block_start))
            p = self._expect_keyword(s, p, "else")
            else_right, p = self._tag_end(s, p, else_start)
            else_nodes, p, stop = self._many(s, p)
        else:
            else_left = else_right = None
            else_nodes = None
        if stop != "endfor":
            self._unexpected_stop(s, "for", "endfor", stop, p if stop else start)

        end_left, p = self._mark(s, p + len(s.syntax.block_start))
        p = self._expect_keyword(s, p, "endfor")
        end_right, p = self._close_mark(s, p)

        if else_nodes is None:
            ws2 = Ws(end_left, None)
            ws3 = Ws(None, end_right)
            else_nodes = ()
        else:
            ws2 = Ws(else_left, else_right)
            ws3 = Ws(end_left, end_right)
        return Loop(Ws(left, right), var, iterable, cond, body, ws2, else_nodes, ws3), p

    def _match(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        text = s.source
        expr, p = self._parse_expr(s, p)
        right, p = self._tag_end(s, p, start)

        # Only whitespace and comments may precede the first arm.
        while True:
            p = skip_ws(text, p)
            if not text.startswith(s.syntax.comment_start, p):
                break
            _, p = self._comment(s, p)
        if not text.startswith(s.syntax.block_start, p) or self._peek_keyword(s, p) != "when":
            s.fail(ParseError, "expected a `when` arm after `match`", p)

        arms: List[When] = []
        stop: Optional[str] = "when"
        while stop == "when":
            arm_start = p
            arm_left, p = self._mark(s, p + len(s.syntax.block_start))
            p = self._expect_keyword(s, p, "when")
            target, p = self._parse_target(s, p)
            arm_right, p = self._tag_end(s, p, arm_start)
            nodes, p, stop = self._many(s, p)
            arms.append(When(Ws(arm_left, arm_right), target, nodes, span=Span(arm_start, p)))

        if stop == "else":
            arm_start = p
            arm_left, p = self._mark(s, p + len(s.syntax.block_start))
            p = self._expect_keyword(s, p, "else")
            arm_right, p = self._tag_end(s, p, arm_start)
            nodes, p, stop = self._many(s, p)
            wildcard = Placeholder(offset=arm_start)
            arms.append(When(Ws(arm_left, arm_right), wildcard, nodes, span=Span(arm_start, p)))

        if stop != "endmatch":
            self._unexpected_stop(s, "match", "endmatch", stop, p if stop else start)
        end_left, p = self._mark(s, p + len(s.syntax.block_start))
        p = self._expect_keyword(s, p, "endmatch")
        end_right, p = self._close_mark(s, p)
        return Match(Ws(left, right), expr, tuple(arms), Ws(end_left, end_right)), p

    def _extends(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        path, p = self._str_lit(s, p)
        right, p = self._close_mark(s, p)
        if left is not None or right is not None:
            s.fail(ParseError, "whitespace control is not allowed on `extends`", start)
        return Extends(path), p

    def _include(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        path, p = self._str_lit(s, p)
        right, p = self._close_mark(s, p)
        return Include(Ws(left, right), path), p

    def _import(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        path, p = self._str_lit(s, p)
        after_as = self._keyword(s, p, "as")
        if after_as is None:
            s.fail(ParseError, "expected `as` after the imported path", skip_ws(s.source, p))
        scope, p = self._identifier(s, after_as, "scope name")
        right, p = self._close_mark(s, p)
        return Import(Ws(left, right), path, scope), p

    def _block_def(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        name, p = self._identifier(s, p, "block name")
        right, p = self._tag_end(s, p, start)
        nodes, p, stop = self._many(s, p)
        end_left, end_right, p = self._named_end(s, "block", name, stop, p, start)
        return BlockDef(Ws(left, right), name, nodes, Ws(end_left, end_right)), p

    def _macro(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        text = s.source
        name, p = self._identifier(s, p, "macro name")
        if is_reserved(name):
            s.fail(ReservedNameError, f"'{name}' is not a valid name for a macro", start)

        params: List[str] = []
        p = skip_ws(text, p)
        if text.startswith("(", p):
            p = skip_ws(text, p + 1)
            while not text.startswith(")", p):
                param, p = self._identifier(s, p, "parameter name")
                params.append(param)
                p = skip_ws(text, p)
                if text.startswith(",", p):
                    p = skip_ws(text, p + 1)
                elif not text.startswith(")", p):
                    s.fail(ParseError, "expected `,` or `)` in the macro parameter list", p)
            p += 1

        right, p = self._tag_end(s, p, start)
        nodes, p, stop = self._many(s, p)
        end_left, end_right, p = self._named_end(s, "macro", name, stop, p, start)
        return Macro(Ws(left, right), name, tuple(params), nodes, Ws(end_left, end_right)), p

    def _raw(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        text = s.source
        right, p = self._tag_end(s, p, start)
        body_start = p
        search = p
        while True:
            tag_start = text.find(s.syntax.block_start, search)
            if tag_start < 0:
                block_end = s.syntax.block_end
                s.fail(UnclosedError, f"unclosed `raw`, missing `{s.syntax.block_start} endraw {block_end}`", start)
            end_left, q = self._mark(s, tag_start + len(s.syntax.block_start))
            after = self._keyword(s, q, "endraw")
            if after is not None:
                end_right, q = self._close_mark(s, after)
                if text.startswith(s.syntax.block_end, q):
                    break
            search = tag_start + 1

        lit = Literal.split_ws_parts(text[body_start:tag_start], span=Span(body_start, tag_start))
        return Raw(Ws(left, right), lit, Ws(end_left, end_right)), q

    def _break(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        right, p = self._close_mark(s, p)
        if not s.is_in_loop:
            s.fail(LoopContextError, "you can only `break` inside a `for` loop", start)
        return Break(Ws(left, right)), p

    def _continue(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        right, p = self._close_mark(s, p)
        if not s.is_in_loop:
            s.fail(LoopContextError, "you can only `continue` inside a `for` loop", start)
        return Continue(Ws(left, right)), p

    def _filter_block(self, s: ParserState, start: int, left: Optional[Whitespace], p: int) -> NodeResult:
        text = s.source
        name_pos = skip_ws(text, p)
        name, p = self._identifier(s, p, "filter name")
        args: tuple = ()
        if text.startswith("(", skip_ws(text, p)):
            args, p = self._parse_arguments(s, p)
        filters = Filter(name, (FilterSource(offset=start), *args), offset=name_pos)

        while True:
            chained = self._parse_filter(s, p)
            if chained is None:
                break
            (chained_name, chained_args), next_p = chained
            filters = Filter(chained_name, (filters, *(chained_args or ())), offset=skip_ws(text, p))
            p = next_p

        right, p = self._tag_end(s, p, start)
        nodes, p, stop = self._many(s, p)
        if stop != "endfilter":
            self._unexpected_stop(s, "filter", "endfilter", stop, p if stop else start)
        end_left, p = self._mark(s, p + len(s.syntax.block_start))
        p = self._expect_keyword(s, p, "endfilter")
        end_right, p = self._close_mark(s, p)
        return FilterBlock(Ws(left, right), filters, nodes, Ws(end_left, end_right)), p

    # ------------------------------ end tags ------------------------------ #

    def _named_end(
        self, s: ParserState, kind: str, name: str, stop: Optional[str], p: int, start: int
    ) -> Tuple[Optional[Whitespace], Optional[Whitespace], int]:
        """Parse `endblock [name]` / `endmacro [name]` up to the closing delimiter."""
        end_keyword = f"end{kind}"
        if stop != end_keyword:
            self._unexpected_stop(s, kind, end_keyword, stop, p if stop else start)
        end_left, p = self._mark(s, p + len(s.syntax.block_start))
        p = self._expect_keyword(s, p, end_keyword)

        name_pos = skip_ws(s.source, p)
        found = identifier_at(s.source, name_pos)
        if found is not None:
            end_name, p = found
            if end_name != name:
                if not name:
                    message = f"unexpected name `{end_name}` in `{end_keyword}` tag for unnamed `{kind}`"
                else:
                    message = f"expected name `{name}` in `{end_keyword}` tag, found `{end_name}`"
                s.fail(NameMismatchError, message, name_pos)

        end_right, p = self._close_mark(s, p)
        return end_left, end_right, p

    def _unexpected_stop(self, s: ParserState, kind: str, expected: str, stop: Optional[str], at: int):
        block_start = s.syntax.block_start
        block_end = s.syntax.block_end
        if stop is None:
            s.fail(UnclosedError, f"unclosed `{kind}`, missing `{block_start} {expected} {block_end}`", at)
        s.fail(UnclosedError, f"unclosed `{kind}`: expected `{expected}`, found `{stop}`", at)

    # ---------------------------- token helpers ---------------------------- #

    def _mark(self, s: ParserState, p: int) -> Tuple[Optional[Whitespace], int]:
        """Whitespace mark exactly at p, if any."""
        mark = Whitespace.from_mark(s.source[p:p + 1])
        return (mark, p + 1) if mark is not None else (None, p)

    def _close_mark(self, s: ParserState, p: int) -> Tuple[Optional[Whitespace], int]:
        """Optional whitespace mark before a closing delimiter."""
        return self._mark(s, skip_ws(s.source, p))

    def _expect_close(self, s: ParserState, p: int, delimiter: str, what: str, start: int) -> int:
        text = s.source
        if text.startswith(delimiter, p):
            return p + len(delimiter)
        if skip_ws(text, p) >= len(text):
            s.fail(UnclosedError, f"unclosed {what}, missing {delimiter!r}", start)
        s.fail(ParseError, f"expected {delimiter!r}, found {text[p:p + 10]!r}", p)

    def _tag_end(self, s: ParserState, p: int, start: int) -> Tuple[Optional[Whitespace], int]:
        """Right mark and closing delimiter of a tag that opens a body."""
        right, p = self._close_mark(s, p)
        return right, self._expect_close(s, p, s.syntax.block_end, "block", start)

    def _keyword(self, s: ParserState, p: int, word: str) -> Optional[int]:
        """Offset after `word` if it is the next identifier, else None."""
        found = identifier_at(s.source, skip_ws(s.source, p))
        if found is not None and found[0] == word:
            return found[1]
        return None

    def _expect_keyword(self, s: ParserState, p: int, word: str) -> int:
        after = self._keyword(s, p, word)
        if after is None:
            s.fail(ParseError, f"expected `{word}`", skip_ws(s.source, p))
        return after

    def _identifier(self, s: ParserState, p: int, what: str) -> Tuple[str, int]:
        p = skip_ws(s.source, p)
        found = identifier_at(s.source, p)
        if found is None:
            s.fail(ParseError, f"expected {what}", p)
        return found

    def _str_lit(self, s: ParserState, p: int) -> Tuple[str, int]:
        p = skip_ws(s.source, p)
        found = str_lit_at(s.source, p)
        if found is None:
            s.fail(ParseError, "expected a string literal", p)
        return found

    def _assign(self, s: ParserState, p: int) -> Optional[int]:
        """Offset after a single `=` (not `==`), else None."""
        p = skip_ws(s.source, p)
        if s.source.startswith("=", p) and not s.source.startswith("==", p):
            return p + 1
        return None

    # ------------------------ expression collaborator ----------------------- #

    def _parse_expr(self, s: ParserState, p: int):
        return self._delegate(s, self.grammar.parse_expr, p)

    def _parse_target(self, s: ParserState, p: int):
        return self._delegate(s, self.grammar.parse_target, p)

    def _parse_arguments(self, s: ParserState, p: int):
        return self._delegate(s, self.grammar.parse_arguments, skip_ws(s.source, p))

    def _parse_filter(self, s: ParserState, p: int):
        return self._delegate(s, self.grammar.parse_filter, p)

    def _delegate(self, s: ParserState, func, p: int):
        try:
            return func(s.source, p, s.level)
        except ExpressionDepthError as e:
            s.fail(NestingError, e.message, e.position)
        except ExpressionError as e:
            s.fail(ParseError, e.message, e.position)
        except RecursionError:
            s.fail(
                NestingError,
                "your template code is too deeply nested, or the last expression is too complex",
                p,
            )


__all__ = ["NodeParser", "CONTINUATION_KEYWORDS"]
