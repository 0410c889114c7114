from pathlib import Path

import pytest

from tplc.config import EscaperNotFoundError, build_config


class TestEscapers:
    def test_builtin_escapers(self, tmp_path: Path):
        cfg = build_config(tmp_path, "")
        assert cfg.escaper_for("html") == "tplc.filters.Html"
        assert cfg.escaper_for("xml") == "tplc.filters.Html"
        assert cfg.escaper_for("txt") == "tplc.filters.Text"
        assert cfg.escaper_for("") == "tplc.filters.Text"

    def test_user_escapers_come_first(self, tmp_path: Path):
        cfg = build_config(tmp_path, '[[escaper]]\npath = "app.Latex"\nextensions = ["tex", "html"]\n')
        assert cfg.escaper_for("tex") == "app.Latex"
        # A user entry shadows the built-in one for the same extension.
        assert cfg.escaper_for("html") == "app.Latex"
        assert cfg.escaper_for("htm") == "tplc.filters.Html"

    def test_first_declared_user_escaper_wins(self, tmp_path: Path):
        source = (
            '[[escaper]]\npath = "one.E"\nextensions = ["x"]\n'
            '[[escaper]]\npath = "two.E"\nextensions = ["x"]\n'
        )
        assert build_config(tmp_path, source).escaper_for("x") == "one.E"

    def test_unknown_extension(self, tmp_path: Path):
        cfg = build_config(tmp_path, "")
        with pytest.raises(EscaperNotFoundError, match="no escaper defined for extension 'rs'") as ei:
            cfg.escaper_for("rs")
        assert "html" in ei.value.available
        assert ei.value.available == sorted(ei.value.available)

    def test_all_extensions(self, tmp_path: Path):
        cfg = build_config(tmp_path, "")
        assert {"html", "md", "jinja2", ""} <= set(cfg.all_extensions())
