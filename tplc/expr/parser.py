"""
Recursive-descent parser for template expressions and binding targets.

Grammar:
expression  → or_expr
or_expr     → and_expr (("or" | "||") and_expr)*
and_expr    → compare (("and" | "&&") compare)*
compare     → additive (("==" | "!=" | "<" | ">" | "<=" | ">=" | "in" | "not" "in") additive)*
additive    → term (("+" | "-") term)*
term        → unary (("*" | "/" | "%") unary)*
unary       → ("not" | "!" | "-") unary | postfix
postfix     → primary ("." IDENT | "[" expression "]" | arguments | filter)*
filter      → "|" IDENT arguments?
arguments   → "(" (expression ("," expression)* ","?)? ")"
primary     → STRING | INT | FLOAT | "true" | "false" | "none" | IDENT
            | "(" expression ")" | "(" (expression ",")+ expression? ")"
            | "[" (expression ("," expression)* ","?)? "]"

target      → single ("," single)*
single      → "_" | literal | "-" number | "(" target? ","? ")"
            | IDENT ("." IDENT)* ("(" target-list ")")?
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from .lexer import ExprLexer, Token
from .model import (
    Array,
    Attr,
    BinOp,
    Call,
    Expr,
    Filter,
    Group,
    Index,
    Lit,
    LitKind,
    LitTarget,
    NameTarget,
    PathTarget,
    Placeholder,
    Target,
    TupleExpr,
    TupleTarget,
    Unary,
    Var,
)

# One nesting level costs about nine interpreter frames in the precedence chain;
# the limit has to trip well before the default recursion limit of 1000.
MAX_DEPTH = 64

WORD_OPERATORS = {"and", "or", "not", "in"}
CONSTANTS = {
    "true": LitKind.BOOL,
    "false": LitKind.BOOL,
    "none": LitKind.NONE,
}
COMPARISON_OPS = {"==", "!=", "<", ">", "<=", ">="}


class ExpressionError(Exception):
    """Syntax error inside an expression or target."""

    def __init__(self, message: str, position: int):
        self.message = message
        self.position = position
        super().__init__(f"Parse error at position {position}: {message}")


class ExpressionDepthError(ExpressionError):
    """Nesting level exceeded MAX_DEPTH."""
    pass


class _Reader:
    """Parsing state for a single call: text, cursor and nesting level."""

    def __init__(self, lexer: ExprLexer, text: str, pos: int, level: int):
        self.lexer = lexer
        self.text = text
        self.pos = pos
        self.level = level

    # ------------------------------ helpers ------------------------------ #

    def peek(self) -> Token:
        return self.lexer.token_at(self.text, self.pos)

    def advance(self) -> Token:
        token = self.peek()
        self.pos = token.end
        return token

    def match_op(self, *ops: str) -> Optional[Token]:
        token = self.peek()
        if token.type == 'OP' and token.value in ops:
            self.pos = token.end
            return token
        return None

    def expect_op(self, op: str, message: str) -> Token:
        token = self.match_op(op)
        if token is None:
            raise ExpressionError(message, self.peek().position)
        return token

    def match_word(self, *words: str) -> Optional[Token]:
        token = self.peek()
        if token.type == 'IDENT' and token.value in words:
            self.pos = token.end
            return token
        return None

    @contextmanager
    def nested(self) -> Iterator[None]:
        if self.level >= MAX_DEPTH:
            raise ExpressionDepthError(
                "your template code is too deeply nested, or the last expression is too complex",
                self.pos,
            )
        self.level += 1
        try:
            yield
        finally:
            self.level -= 1

    def starts_operand(self) -> bool:
        """Whether the next token can begin an operand."""
        token = self.peek()
        if token.type in ('STRING', 'INT', 'FLOAT'):
            return True
        if token.type == 'IDENT':
            return token.value not in WORD_OPERATORS or token.value == "not"
        return token.type == 'OP' and token.value in ('(', '[', '!', '-')

    def binary_rhs(self, op_token: Token, parse_operand) -> Optional[Expr]:
        """
        Parse the right operand after an already consumed operator.

        When no operand can start after the operator, rewind to before the
        operator and return None: the symbol belongs to the enclosing tag
        (e.g. the whitespace mark in `{{ a -}}` or the `%` of `%}`).
        """
        if not self.starts_operand():
            self.pos = op_token.position
            return None
        return parse_operand()

    # ---------------------------- expressions ---------------------------- #

    def expression(self) -> Expr:
        return self.or_expr()

    def or_expr(self) -> Expr:
        left = self.and_expr()
        while True:
            op = self.match_word("or") or self.match_op("||")
            if op is None:
                return left
            right = self.binary_rhs(op, self.and_expr)
            if right is None:
                return left
            left = BinOp("or", left, right, offset=left.offset)

    def and_expr(self) -> Expr:
        left = self.compare()
        while True:
            op = self.match_word("and") or self.match_op("&&")
            if op is None:
                return left
            right = self.binary_rhs(op, self.compare)
            if right is None:
                return left
            left = BinOp("and", left, right, offset=left.offset)

    def compare(self) -> Expr:
        left = self.additive()
        while True:
            start = self.pos
            op = self.match_op(*COMPARISON_OPS)
            name = op.value if op else None
            if op is None:
                op = self.match_word("in")
                name = "in" if op else None
            if op is None and self.match_word("not"):
                op = self.match_word("in")
                name = "not in"
                if op is None:
                    self.pos = start
                    return left
            if op is None:
                return left
            right = self.binary_rhs(op, self.additive)
            if right is None:
                self.pos = start
                return left
            left = BinOp(name, left, right, offset=left.offset)

    def additive(self) -> Expr:
        left = self.term()
        while True:
            op = self.match_op("+", "-")
            if op is None:
                return left
            right = self.binary_rhs(op, self.term)
            if right is None:
                return left
            left = BinOp(op.value, left, right, offset=left.offset)

    def term(self) -> Expr:
        left = self.unary()
        while True:
            op = self.match_op("*", "/", "%")
            if op is None:
                return left
            right = self.binary_rhs(op, self.unary)
            if right is None:
                return left
            left = BinOp(op.value, left, right, offset=left.offset)

    def unary(self) -> Expr:
        op = self.match_word("not") or self.match_op("!", "-")
        if op is None:
            return self.postfix()
        with self.nested():
            operand = self.unary()
        name = "not" if op.value in ("not", "!") else "-"
        return Unary(name, operand, offset=op.position)

    def postfix(self) -> Expr:
        expr = self.primary()
        while True:
            token = self.peek()
            if token.type != 'OP':
                return expr
            if token.value == '.':
                self.advance()
                attr = self.advance()
                if attr.type != 'IDENT':
                    raise ExpressionError("expected attribute name after '.'", attr.position)
                expr = Attr(expr, attr.value, offset=expr.offset)
            elif token.value == '[':
                self.advance()
                with self.nested():
                    key = self.expression()
                self.expect_op(']', "expected ']' after index expression")
                expr = Index(expr, key, offset=expr.offset)
            elif token.value == '(':
                args = self.arguments()
                expr = Call(expr, args, offset=expr.offset)
            elif token.value == '|':
                name, args = self.filter()
                expr = Filter(name, (expr, *(args or ())), offset=expr.offset)
            else:
                return expr

    def filter(self) -> Tuple[str, Optional[Tuple[Expr, ...]]]:
        self.expect_op('|', "expected '|'")
        name = self.advance()
        if name.type != 'IDENT':
            raise ExpressionError("expected filter name after '|'", name.position)
        args = None
        token = self.peek()
        if token.type == 'OP' and token.value == '(':
            args = self.arguments()
        return name.value, args

    def arguments(self) -> Tuple[Expr, ...]:
        self.expect_op('(', "expected '('")
        with self.nested():
            items = self.sequence(')')
        return tuple(items)

    def sequence(self, closing: str) -> List[Expr]:
        """Comma-separated expressions up to `closing`, trailing comma allowed."""
        items: List[Expr] = []
        while not self.match_op(closing):
            items.append(self.expression())
            if self.match_op(','):
                continue
            self.expect_op(closing, f"expected ',' or '{closing}'")
            break
        return items

    def primary(self) -> Expr:
        token = self.peek()

        if token.type == 'STRING':
            self.advance()
            return Lit(LitKind.STR, token.value, offset=token.position)
        if token.type == 'INT':
            self.advance()
            return Lit(LitKind.INT, token.value, offset=token.position)
        if token.type == 'FLOAT':
            self.advance()
            return Lit(LitKind.FLOAT, token.value, offset=token.position)

        if token.type == 'IDENT':
            if token.value in WORD_OPERATORS:
                raise ExpressionError(f"unexpected keyword '{token.value}'", token.position)
            self.advance()
            if token.value in CONSTANTS:
                return Lit(CONSTANTS[token.value], token.value, offset=token.position)
            return Var(token.value, offset=token.position)

        if token.type == 'OP' and token.value == '(':
            self.advance()
            with self.nested():
                if self.match_op(')'):
                    return TupleExpr((), offset=token.position)
                first = self.expression()
                if self.match_op(')'):
                    return Group(first, offset=token.position)
                self.expect_op(',', "expected ',' or ')'")
                rest = self.sequence(')')
            return TupleExpr((first, *rest), offset=token.position)

        if token.type == 'OP' and token.value == '[':
            self.advance()
            with self.nested():
                items = self.sequence(']')
            return Array(tuple(items), offset=token.position)

        if token.type == 'EOF':
            raise ExpressionError("unexpected end of input in expression", token.position)
        raise ExpressionError(f"unexpected '{token.value}' in expression", token.position)

    # ------------------------------ targets ------------------------------ #

    def target(self) -> Target:
        first = self.single_target()
        if not self._at_op(','):
            return first
        items = [first]
        while self.match_op(','):
            if not self._starts_target():
                break
            items.append(self.single_target())
        return TupleTarget(tuple(items), offset=first.offset)

    def single_target(self) -> Target:
        token = self.peek()

        if token.type == 'OP' and token.value == '(':
            self.advance()
            with self.nested():
                if self.match_op(')'):
                    return TupleTarget((), offset=token.position)
                first = self.single_target()
                if self.match_op(')'):
                    return first
                self.expect_op(',', "expected ',' or ')' in target")
                items = [first, *self.target_list(')')]
            return TupleTarget(tuple(items), offset=token.position)

        if token.type in ('STRING', 'INT', 'FLOAT'):
            return LitTarget(self.primary(), offset=token.position)
        if token.type == 'OP' and token.value == '-':
            self.advance()
            number = self.advance()
            if number.type not in ('INT', 'FLOAT'):
                raise ExpressionError("expected number after '-' in pattern", number.position)
            kind = LitKind.INT if number.type == 'INT' else LitKind.FLOAT
            return LitTarget(Lit(kind, "-" + number.value, offset=token.position), offset=token.position)

        if token.type == 'IDENT':
            if token.value in CONSTANTS:
                return LitTarget(self.primary(), offset=token.position)
            if token.value in WORD_OPERATORS:
                raise ExpressionError(f"unexpected keyword '{token.value}' in target", token.position)
            self.advance()
            if token.value == "_":
                return Placeholder(offset=token.position)
            path = [token.value]
            while self._at_op('.'):
                self.advance()
                part = self.advance()
                if part.type != 'IDENT':
                    raise ExpressionError("expected identifier after '.' in pattern", part.position)
                path.append(part.value)
            if self._at_op('('):
                self.advance()
                with self.nested():
                    args = self.target_list(')')
                return PathTarget(tuple(path), tuple(args), offset=token.position)
            if len(path) == 1:
                return NameTarget(token.value, offset=token.position)
            return PathTarget(tuple(path), offset=token.position)

        raise ExpressionError(f"unexpected '{token.value}' in target", token.position)

    def target_list(self, closing: str) -> List[Target]:
        items: List[Target] = []
        while not self.match_op(closing):
            items.append(self.single_target())
            if self.match_op(','):
                continue
            self.expect_op(closing, f"expected ',' or '{closing}' in target")
            break
        return items

    def _at_op(self, op: str) -> bool:
        token = self.peek()
        return token.type == 'OP' and token.value == op

    def _starts_target(self) -> bool:
        token = self.peek()
        if token.type in ('STRING', 'INT', 'FLOAT'):
            return True
        if token.type == 'IDENT':
            return token.value not in WORD_OPERATORS
        return token.type == 'OP' and token.value in ('(', '-')


class ExprParser:
    """
    Default expression grammar.

    Stateless and thread-safe: every call builds its own reader, so one
    instance can be shared by all parsers.
    """

    def __init__(self):
        self.lexer = ExprLexer()

    def parse_expr(self, text: str, pos: int, level: int) -> Tuple[Expr, int]:
        reader = _Reader(self.lexer, text, pos, level)
        with reader.nested():
            expr = reader.expression()
        return expr, reader.pos

    def parse_target(self, text: str, pos: int, level: int) -> Tuple[Target, int]:
        reader = _Reader(self.lexer, text, pos, level)
        with reader.nested():
            target = reader.target()
        return target, reader.pos

    def parse_arguments(self, text: str, pos: int, level: int) -> Tuple[Tuple[Expr, ...], int]:
        reader = _Reader(self.lexer, text, pos, level)
        args = reader.arguments()
        return args, reader.pos

    def parse_filter(
        self, text: str, pos: int, level: int
    ) -> Optional[Tuple[Tuple[str, Optional[Tuple[Expr, ...]]], int]]:
        reader = _Reader(self.lexer, text, pos, level)
        token = reader.peek()
        if token.type != 'OP' or token.value != '|':
            return None
        name, args = reader.filter()
        return (name, args), reader.pos


__all__ = ["ExprParser", "ExpressionError", "ExpressionDepthError", "MAX_DEPTH"]
