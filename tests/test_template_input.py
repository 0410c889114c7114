from pathlib import Path

import pytest

from tplc.config import ConfigError, EscaperNotFoundError, TemplateNotFoundError
from tplc.input import CyclicDependencyError, TemplateInput, TemplateReadError, extension_of, read_template
from tplc.parser import ParseError
from tplc.session import CompilationSession

from tests.infrastructure.file_utils import write_template


@pytest.fixture
def proj_config(tmpproj: Path):
    s = CompilationSession(tmpproj)
    yield s.load_config()
    s.close()


class TestExtension:
    @pytest.mark.parametrize("name, ext", [
        ("page.html", "html"),
        ("page.html.j2", "html"),
        ("mail.txt.jinja2", "txt"),
        ("plain.j2", "j2"),
        ("Makefile", ""),
    ])
    def test_extension_of(self, name, ext):
        assert extension_of(Path(name)) == ext


class TestReadTemplate:
    def test_single_trailing_newline_stripped(self, tmp_path: Path):
        p = tmp_path / "a.html"
        p.write_text("line\n\n", encoding="utf-8")
        assert read_template(p) == "line\n"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(TemplateReadError, match="unable to open template file"):
            read_template(tmp_path / "nope.html")


class TestNew:
    def test_requires_exactly_one_of_path_or_source(self, proj_config):
        with pytest.raises(ConfigError, match="exactly one of"):
            TemplateInput.new(proj_config)
        with pytest.raises(ConfigError, match="exactly one of"):
            TemplateInput.new(proj_config, path="page.html", source="x")

    def test_inline_source_requires_ext(self, proj_config):
        with pytest.raises(ConfigError, match="must include 'ext'"):
            TemplateInput.new(proj_config, source="x")

    def test_inline_source(self, proj_config):
        tpl = TemplateInput.new(proj_config, source="Hi {{ n }}", ext="txt")
        assert tpl.path == Path("_source.txt")
        assert tpl.escaper == "tplc.filters.Text"

    def test_file_template(self, proj_config, tmpproj: Path):
        tpl = TemplateInput.new(proj_config, path="page.html")
        assert tpl.path == (tmpproj / "templates" / "page.html").resolve()
        assert tpl.escaper == "tplc.filters.Html"
        assert tpl.source is None

    def test_explicit_escaping_overrides_extension(self, proj_config):
        tpl = TemplateInput.new(proj_config, path="page.html", escaping="txt")
        assert tpl.escaper == "tplc.filters.Text"

    def test_named_syntax(self, proj_config):
        tpl = TemplateInput.new(proj_config, source="/*% if a %*/x/*% endif %*/", ext="txt", syntax="sql")
        assert tpl.syntax is proj_config.syntax("sql")

    def test_missing_template(self, proj_config):
        with pytest.raises(TemplateNotFoundError):
            TemplateInput.new(proj_config, path="absent.html")

    def test_unknown_extension(self, proj_config):
        with pytest.raises(EscaperNotFoundError):
            TemplateInput.new(proj_config, source="x", ext="rs")


class TestFindUsedTemplates:
    def test_extends_and_include_are_followed(self, proj_config, tmpproj: Path):
        tpl = TemplateInput.new(proj_config, path="page.html")
        used = tpl.find_used_templates()
        templates = tmpproj.resolve() / "templates"
        assert set(used) == {
            templates / "page.html",
            templates / "base.html",
            templates / "nav.html",
        }

    def test_parsed_results_come_from_the_cache(self, proj_config):
        tpl = TemplateInput.new(proj_config, path="page.html")
        first = tpl.find_used_templates()
        second = tpl.find_used_templates()
        assert all(first[p] is second[p] for p in first)

    def test_include_inside_imported_macro_is_followed(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "lib.html", "{% macro m %}{% include 'nav.html' %}{% endmacro %}")
        tpl = TemplateInput.new(proj_config, source="{% import 'lib.html' as lib %}{% call lib.m() %}", ext="html")
        used = tpl.find_used_templates()
        names = {p.name for p in used}
        assert names == {"_source.html", "lib.html", "nav.html"}

    def test_import_inside_block_is_followed(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "lib.html", "{% macro m %}{% endmacro %}")
        source = "{% block body %}{% import 'lib.html' as lib %}{% endblock %}"
        tpl = TemplateInput.new(proj_config, source=source, ext="html")
        assert "lib.html" in {p.name for p in tpl.find_used_templates()}

    def test_nested_extends_is_not_a_parent(self, proj_config, tmpproj: Path):
        source = "{% if a %}{% extends 'missing.html' %}{% endif %}"
        tpl = TemplateInput.new(proj_config, source=source, ext="html")
        assert {p.name for p in tpl.find_used_templates()} == {"_source.html"}

    def test_includes_inside_control_flow(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "a.html", "a")
        write_template(tmpproj, "b.html", "b")
        source = "{% for x in xs %}{% include 'a.html' %}{% endfor %}{% match v %}{% when _ %}{% include 'b.html' %}{% endmatch %}"
        tpl = TemplateInput.new(proj_config, source=source, ext="html")
        names = {p.name for p in tpl.find_used_templates()}
        assert {"a.html", "b.html"} <= names

    def test_sibling_lookup_for_nested_templates(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "pages/index.html", "{% include 'part.html' %}")
        part = write_template(tmpproj, "pages/part.html", "part")
        tpl = TemplateInput.new(proj_config, path="pages/index.html")
        assert part.resolve() in tpl.find_used_templates()

    def test_extends_cycle(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "x.html", "{% extends 'y.html' %}")
        write_template(tmpproj, "y.html", "{% extends 'x.html' %}")
        tpl = TemplateInput.new(proj_config, path="x.html")
        with pytest.raises(CyclicDependencyError, match="cyclic dependency in graph"):
            tpl.find_used_templates()

    def test_self_extends_cycle(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "self.html", "{% extends 'self.html' %}")
        tpl = TemplateInput.new(proj_config, path="self.html")
        with pytest.raises(CyclicDependencyError):
            tpl.find_used_templates()

    def test_mutual_includes_terminate(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "p.html", "{% include 'q.html' %}")
        write_template(tmpproj, "q.html", "{% include 'p.html' %}")
        tpl = TemplateInput.new(proj_config, path="p.html")
        assert {p.name for p in tpl.find_used_templates()} == {"p.html", "q.html"}

    def test_parse_error_names_the_file(self, proj_config, tmpproj: Path):
        write_template(tmpproj, "broken.html", "ok\n{% if %}")
        tpl = TemplateInput.new(proj_config, source="{% include 'broken.html' %}", ext="html")
        with pytest.raises(ParseError) as ei:
            tpl.find_used_templates()
        assert ei.value.path.endswith("broken.html")
        assert ei.value.row == 2
