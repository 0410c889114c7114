from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config
from .errors import TplcUserError
from .input import TemplateInput
from .jsonic import dumps as jdumps
from .parser import ParseError
from .report_schema import (
    CheckReport,
    ConfigReport,
    EscaperInfo,
    Status,
    SyntaxInfo,
    TemplateCheck,
    TemplateLocation,
)
from .session import CompilationSession
from .version import tool_version


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tplc",
        description="Template compiler core: parse templates and inspect the resolved config",
        add_help=True,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging to stderr")
    p.add_argument("--root", help="project root (default: $TPLC_PROJECT_ROOT or the current directory)")
    p.add_argument("--config", dest="config_path", help="config file relative to the root (default: tplc.toml)")
    p.add_argument(
        "--whitespace",
        help="whitespace policy override: preserve | suppress | minimize",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_ast = sub.add_parser("ast", help="Print the parsed tree of a template")
    sp_ast.add_argument("template", help="template path (a file, or a name in the search directories)")
    sp_ast.add_argument("--syntax", help="named syntax from the config (default: the config's default)")

    sp_check = sub.add_parser("check", help="Parse templates and everything they use (JSON)")
    sp_check.add_argument("templates", nargs="+", metavar="TEMPLATE")
    sp_check.add_argument("--syntax", help="named syntax from the config")

    sub.add_parser("config", help="Resolved configuration (JSON)")

    return p


def _template_arg(template: str) -> str:
    # A path to an existing file wins over lookup in the search directories.
    candidate = Path(template)
    if candidate.is_file():
        return str(candidate.resolve())
    return template


def _run_ast(cfg: Config, ns: argparse.Namespace) -> int:
    tpl = TemplateInput.new(cfg, path=_template_arg(ns.template), syntax=ns.syntax)
    parsed = tpl.find_used_templates()[tpl.path]
    sys.stdout.write(parsed.format_tree() + "\n")
    return 0


def _check_one(cfg: Config, template: str, syntax: Optional[str]) -> TemplateCheck:
    try:
        tpl = TemplateInput.new(cfg, path=_template_arg(template), syntax=syntax)
        used = tpl.find_used_templates()
    except ParseError as e:
        return TemplateCheck(
            template=template,
            status=Status.error,
            error=str(e),
            location=TemplateLocation(row=e.row, column=e.column),
        )
    except TplcUserError as e:
        return TemplateCheck(template=template, status=Status.error, error=str(e))
    return TemplateCheck(
        template=template,
        status=Status.ok,
        used_templates=sorted(str(p) for p in used if p != tpl.path),
    )


def _run_check(session: CompilationSession, cfg: Config, ns: argparse.Namespace) -> int:
    checks: List[TemplateCheck] = [_check_one(cfg, t, ns.syntax) for t in ns.templates]
    ok = all(c.status is Status.ok for c in checks)
    report = CheckReport(
        tool_version=tool_version(),
        root=str(session.root),
        ok=ok,
        templates=checks,
    )
    sys.stdout.write(jdumps(report.model_dump(mode="json")))
    return 0 if ok else 1


def _run_config(session: CompilationSession, cfg: Config) -> int:
    report = ConfigReport(
        tool_version=tool_version(),
        root=str(session.root),
        config_path=cfg.config_path,
        dirs=[str(d) for d in cfg.dirs],
        default_syntax=cfg.default_syntax,
        whitespace=cfg.whitespace.value,
        syntaxes=[
            SyntaxInfo(
                name=name,
                block_start=s.syntax.block_start,
                block_end=s.syntax.block_end,
                expr_start=s.syntax.expr_start,
                expr_end=s.syntax.expr_end,
                comment_start=s.syntax.comment_start,
                comment_end=s.syntax.comment_end,
            )
            for name, s in sorted(cfg.syntaxes.items())
        ],
        escapers=[EscaperInfo(path=e.path, extensions=sorted(e.extensions)) for e in cfg.escapers],
    )
    sys.stdout.write(jdumps(report.model_dump(mode="json")))
    return 0


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    if ns.verbose:
        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(name)s: %(message)s")

    try:
        with CompilationSession(ns.root) as session:
            cfg = session.load_config(ns.config_path, ns.whitespace)

            if ns.cmd == "ast":
                return _run_ast(cfg, ns)
            if ns.cmd == "check":
                return _run_check(session, cfg, ns)
            if ns.cmd == "config":
                return _run_config(session, cfg)

    except TplcUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
