import pytest

from tplc.expr import MAX_DEPTH, ExprParser, ExpressionDepthError, ExpressionError
from tplc.expr.lexer import ExprLexer
from tplc.expr.model import (
    Array,
    Attr,
    BinOp,
    Call,
    Filter,
    Group,
    Index,
    Lit,
    LitKind,
    LitTarget,
    NameTarget,
    PathTarget,
    Placeholder,
    TupleExpr,
    TupleTarget,
    Unary,
    Var,
)


def expr(text: str):
    return ExprParser().parse_expr(text, 0, 0)


def target(text: str):
    return ExprParser().parse_target(text, 0, 0)


class TestLexer:
    def setup_method(self):
        self.lexer = ExprLexer()

    def test_tokens_read_at_offset(self):
        tok = self.lexer.token_at("xx  foo", 2)
        assert (tok.type, tok.value, tok.position) == ("IDENT", "foo", 4)

    def test_string_contents_without_quotes(self):
        tok = self.lexer.token_at("'a\\'b'", 0)
        assert tok.type == "STRING"
        assert tok.value == "a\\'b"

    def test_unknown_character(self):
        assert self.lexer.token_at("}}", 0).type == "UNKNOWN"

    def test_eof(self):
        assert self.lexer.token_at("   ", 0).type == "EOF"


class TestExpressions:
    def test_precedence(self):
        e, _ = expr("a + b * c")
        assert e == BinOp("+", Var("a"), BinOp("*", Var("b"), Var("c")))

    def test_boolean_operators_and_aliases(self):
        e, _ = expr("a || b && !c")
        assert e == BinOp("or", Var("a"), BinOp("and", Var("b"), Unary("not", Var("c"))))

    def test_not_in(self):
        e, _ = expr("x not in xs")
        assert e == BinOp("not in", Var("x"), Var("xs"))

    def test_postfix_chain(self):
        e, _ = expr("user.items[0](1, 'a')")
        assert e == Call(Index(Attr(Var("user"), "items"), Lit(LitKind.INT, "0")), (Lit(LitKind.INT, "1"), Lit(LitKind.STR, "a")))

    def test_filter_receives_input_first(self):
        e, _ = expr("name|truncate(10)|upper")
        assert e == Filter("upper", (Filter("truncate", (Var("name"), Lit(LitKind.INT, "10"))),))

    def test_group_tuple_array(self):
        assert expr("(a)")[0] == Group(Var("a"))
        assert expr("(a,)")[0] == TupleExpr((Var("a"),))
        assert expr("[1, 2,]")[0] == Array((Lit(LitKind.INT, "1"), Lit(LitKind.INT, "2")))

    def test_constants(self):
        assert expr("true")[0] == Lit(LitKind.BOOL, "true")
        assert expr("none")[0] == Lit(LitKind.NONE, "none")

    def test_stops_before_closing_delimiter(self):
        text = "a.b }} rest"
        e, pos = expr(text)
        assert e == Attr(Var("a"), "b")
        assert text[pos:].lstrip().startswith("}}")

    @pytest.mark.parametrize("text, rest", [
        ("a -}}", "-}}"),
        ("a ~%}", "~%}"),
        ("a %}", "%}"),
        ("a +}}", "+}}"),
    ])
    def test_trailing_operator_is_left_to_the_tag(self, text, rest):
        """A dangling operator is a whitespace mark or part of the closing delimiter."""
        e, pos = expr(text)
        assert e == Var("a")
        assert text[pos:].lstrip() == rest

    def test_offsets_do_not_affect_equality(self):
        assert expr("  a")[0] == expr("a")[0]
        assert expr("  a")[0].offset == 2

    def test_missing_operand_is_an_error(self):
        with pytest.raises(ExpressionError, match="unexpected end of input"):
            expr("")

    def test_unclosed_index(self):
        with pytest.raises(ExpressionError, match=r"expected '\]'"):
            expr("a[1")

    def test_depth_limit(self):
        with pytest.raises(ExpressionDepthError, match="too deeply nested"):
            expr("(" * 200 + "a" + ")" * 200)

    def test_deepest_accepted_group(self):
        n = MAX_DEPTH - 1
        node, _ = expr("(" * n + "a" + ")" * n)
        for _ in range(n):
            node = node.inner
        assert node == Var("a")

    @pytest.mark.parametrize("n", [MAX_DEPTH, MAX_DEPTH + 5, 110, 127])
    def test_depth_limit_trips_before_recursion_limit(self, n):
        with pytest.raises(ExpressionDepthError):
            expr("(" * n + "a" + ")" * n)

    def test_nested_index_counts_towards_depth(self):
        with pytest.raises(ExpressionDepthError):
            expr("a[" * 120 + "0" + "]" * 120)

    def test_starting_level_is_honoured(self):
        with pytest.raises(ExpressionDepthError):
            ExprParser().parse_expr("(a)", 0, MAX_DEPTH - 1)


class TestTargets:
    def test_name(self):
        assert target("x")[0] == NameTarget("x")

    def test_placeholder(self):
        assert target("_")[0] == Placeholder()

    def test_bare_tuple(self):
        assert target("k, v")[0] == TupleTarget((NameTarget("k"), NameTarget("v")))

    def test_parenthesized_tuple(self):
        assert target("(a, (b, _))")[0] == TupleTarget(
            (NameTarget("a"), TupleTarget((NameTarget("b"), Placeholder())))
        )

    def test_literals_and_negative_numbers(self):
        assert target("'x'")[0] == LitTarget(Lit(LitKind.STR, "x"))
        assert target("-3")[0] == LitTarget(Lit(LitKind.INT, "-3"))

    def test_path_with_arguments(self):
        assert target("Some(x)")[0] == PathTarget(("Some",), (NameTarget("x"),))
        assert target("Color.Red")[0] == PathTarget(("Color", "Red"))

    def test_target_stops_before_assignment(self):
        text = "x = 1"
        t, pos = target(text)
        assert t == NameTarget("x")
        assert text[pos:].lstrip().startswith("=")


class TestFilterHook:
    def test_no_filter_returns_none(self):
        assert ExprParser().parse_filter(" %}", 0, 0) is None

    def test_filter_with_arguments(self):
        (name, args), _ = ExprParser().parse_filter("|indent(2) %}", 0, 0)
        assert name == "indent"
        assert args == (Lit(LitKind.INT, "2"),)
