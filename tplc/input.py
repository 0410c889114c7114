"""
Template input: one template to compile, plus discovery of every template it
transitively depends on through `extends`, `include` and `import`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import Config, ConfigError, SyntaxAndCache
from .errors import TplcUserError
from .parser import (
    BlockDef,
    Extends,
    FilterBlock,
    If,
    Import,
    Include,
    Loop,
    Macro,
    Match,
    Node,
    ParsedTemplate,
)

logger = logging.getLogger(__name__)

JINJA_EXTENSIONS = ("j2", "jinja", "jinja2")
INLINE_NAME = "_source"


class TemplateReadError(TplcUserError):
    def __init__(self, path: Path, cause: OSError):
        self.path = path
        super().__init__(f"unable to open template file '{path}': {cause}")


class CyclicDependencyError(ConfigError):
    def __init__(self, chain: List[Tuple[Path, Path]]):
        self.chain = chain
        lines = "\n".join(f"  {parent} --> {child}" for parent, child in chain)
        super().__init__(f"cyclic dependency in graph\n{lines}")


def extension_of(path: Path) -> str:
    """
    Extension used to pick the escaper.

    For `page.html.j2` the inner `html` wins over the Jinja suffix.
    Files without an extension yield "".
    """
    ext = path.suffix[1:]
    if ext in JINJA_EXTENSIONS:
        inner = Path(path.stem).suffix[1:]
        return inner or ext
    return ext


def read_template(path: Path) -> str:
    """Template file contents without the single trailing newline editors add."""
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateReadError(path, e) from e
    if source.endswith("\n"):
        source = source[:-1]
    return source


@dataclass(frozen=True)
class TemplateInput:
    """
    Attributes:
        config: Resolved config the template is compiled under
        syntax: Syntax (with its parse cache) used for this template
        path: Template file, or a synthetic `<name>.<ext>` for inline source
        source: Inline template text; None when the template is a file
        escaper: Escaper identifier chosen for the template's extension
    """
    config: Config
    syntax: SyntaxAndCache
    path: Path
    source: Optional[str]
    escaper: str

    @classmethod
    def new(
        cls,
        config: Config,
        *,
        path: Optional[str] = None,
        source: Optional[str] = None,
        ext: Optional[str] = None,
        syntax: Optional[str] = None,
        escaping: Optional[str] = None,
        name: str = INLINE_NAME,
    ) -> "TemplateInput":
        """
        Exactly one of path or source must be given; inline source also needs ext.

        Raises:
            ConfigError: Bad combination of arguments or unknown syntax name
            TemplateNotFoundError: path not found in the search directories
            EscaperNotFoundError: No escaper for the resolved extension
        """
        if (path is None) == (source is None):
            raise ConfigError("specify exactly one of 'path' or 'source'")
        if source is not None:
            if ext is None:
                raise ConfigError("must include 'ext' when using inline 'source'")
            resolved = Path(f"{name}.{ext}")
        else:
            resolved = config.find_template(path)

        syntax_cache = config.syntax(syntax)
        escaper = config.escaper_for(escaping or ext or extension_of(resolved))
        return cls(config, syntax_cache, resolved, source, escaper)

    def find_used_templates(self) -> Dict[Path, ParsedTemplate]:
        """
        Parse this template and every template reachable from it.

        Returns:
            path → parsed template, including this template itself

        Raises:
            CyclicDependencyError: An `extends` chain loops back on itself
            ParseError, TemplateNotFoundError, TemplateReadError
        """
        templates: Dict[Path, ParsedTemplate] = {}
        extends_of: Dict[Path, Path] = {}

        if self.source is not None:
            check: List[Tuple[Path, str, Optional[Path]]] = [(self.path, self.source, None)]
        else:
            check = [(self.path, read_template(self.path), self.path)]

        while check:
            path, source, source_path = check.pop()
            parsed = self.syntax.parse(source, source_path)

            def add_to_check(new_path: Path) -> None:
                if new_path not in templates and all(p != new_path for p, _, _ in check):
                    check.append((new_path, read_template(new_path), new_path))

            # Only a top-level `extends` names a parent; other references count at any depth.
            top = True
            nested: List[Tuple[Node, ...]] = [parsed.nodes]
            while nested:
                for node in nested.pop():
                    if isinstance(node, Extends) and top:
                        parent = self.config.find_template(node.path, start_at=path)
                        self._check_cycle(extends_of, path, parent)
                        extends_of[path] = parent
                        add_to_check(parent)
                    elif isinstance(node, (Import, Include)):
                        add_to_check(self.config.find_template(node.path, start_at=path))
                    elif isinstance(node, (BlockDef, FilterBlock, Macro)):
                        nested.append(node.nodes)
                    elif isinstance(node, If):
                        nested.extend(branch.nodes for branch in node.branches)
                    elif isinstance(node, Loop):
                        nested.append(node.body)
                        nested.append(node.else_nodes)
                    elif isinstance(node, Match):
                        nested.extend(arm.nodes for arm in node.arms)
                top = False

            logger.debug("Collected template %s", path)
            templates[path] = parsed

        return templates

    @staticmethod
    def _check_cycle(extends_of: Dict[Path, Path], child: Path, parent: Path) -> None:
        """Follow the known `extends` edges from parent; reaching child again is a cycle."""
        chain = [(child, parent)]
        current = parent
        while current != child and current in extends_of:
            chain.append((current, extends_of[current]))
            current = extends_of[current]
        if current == child:
            raise CyclicDependencyError(chain)


__all__ = [
    "TemplateInput",
    "TemplateReadError",
    "CyclicDependencyError",
    "extension_of",
    "read_template",
]
