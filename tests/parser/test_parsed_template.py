from tplc.parser import Expression, ParsedTemplate, iter_nodes
from tplc.syntax import SyntaxDefinition


class TestParsedTemplate:
    def setup_method(self):
        self.source = "Hi\n{% if user %}{{ user.name }}{% endif %}"
        self.parsed = ParsedTemplate.parse(self.source, "greet.txt", SyntaxDefinition())

    def test_span_text(self):
        expr = next(n for n in iter_nodes(self.parsed.nodes) if isinstance(n, Expression))
        assert self.parsed.span_text(expr.span) == "{{ user.name }}"

    def test_error_info_for_node(self):
        node = self.parsed.nodes[1]
        info = self.parsed.error_info(node.span)
        assert (info.row, info.column) == (2, 1)
        assert info.excerpt.startswith("{% if user %}")

    def test_format_tree_indents_children(self):
        lines = self.parsed.format_tree().splitlines()
        assert lines[0] == "Literal('Hi\\n')"
        assert lines[1].startswith("If(")
        assert lines[2].startswith("  Cond(")
        assert lines[3].startswith("    Expression(")

    def test_compared_by_identity(self):
        again = ParsedTemplate.parse(self.source, "greet.txt", SyntaxDefinition())
        assert again != self.parsed
        assert again.nodes == self.parsed.nodes
