import textwrap
from pathlib import Path

import pytest

from tplc.parser import NodeParser
from tplc.session import CompilationSession
from tplc.syntax import SyntaxDefinition

from tests.infrastructure.file_utils import write


@pytest.fixture
def tmpproj(tmp_path: Path):
    """Minimal project: tplc.toml with one extra syntax, templates/ with a small extends/include graph."""
    root = tmp_path
    write(
        root / "tplc.toml",
        textwrap.dedent("""
        [general]
        dirs = ["templates"]

        [[syntax]]
        name = "sql"
        block_start = "/*%"
        block_end = "%*/"
        """).lstrip(),
    )
    write(root / "templates" / "base.html", "<title>{% block title %}{% endblock %}</title>\n")
    write(root / "templates" / "nav.html", "<nav>{{ user }}</nav>\n")
    write(
        root / "templates" / "page.html",
        '{% extends "base.html" %}{% block title %}{% include "nav.html" %}{% endblock %}\n',
    )
    return root


@pytest.fixture(autouse=True)
def _isolated_root(monkeypatch):
    # Sessions created without an explicit root must never pick up the caller's environment.
    monkeypatch.delenv("TPLC_PROJECT_ROOT", raising=False)


@pytest.fixture
def session(tmp_path: Path):
    s = CompilationSession(tmp_path)
    yield s
    s.close()


@pytest.fixture
def parse():
    """Parse a template with the default syntax (or a given one)."""
    def _parse(source: str, syntax: SyntaxDefinition | None = None):
        return NodeParser(syntax or SyntaxDefinition()).parse(source)
    return _parse
