from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Optional, Tuple, Union

from ..cache import OnceMap
from ..expr.protocols import ExpressionGrammar
from ..parser import NodeParser, ParsedTemplate, Whitespace
from ..syntax import SyntaxDefinition
from .errors import EscaperNotFoundError, TemplateNotFoundError, UnknownSyntaxError

logger = logging.getLogger(__name__)

DEFAULT_SYNTAX_NAME = "default"
DEFAULT_DIR_NAME = "templates"
ESCAPER_PACKAGE = "tplc.filters"

# Built-in fallbacks, consulted after every user-declared escaper.
DEFAULT_ESCAPERS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("html", "htm", "j2", "jinja", "jinja2", "svg", "xml"), "Html"),
    (("md", "none", "txt", "yml", ""), "Text"),
)

ParseKey = Tuple[str, Optional[str]]


class SyntaxAndCache:
    """
    A syntax together with its own parse cache.

    Each syntax keeps a separate cache: the same source text means a
    different template under different delimiters.
    """

    def __init__(self, syntax: SyntaxDefinition, grammar: Optional[ExpressionGrammar] = None):
        self.syntax = syntax
        self._parser = NodeParser(syntax, grammar)
        self._cache: OnceMap[ParseKey, ParsedTemplate] = OnceMap(name="parse-cache")

    def parse(self, source: str, path: Union[str, Path, None] = None) -> ParsedTemplate:
        """
        Parse source, or return the template already parsed for (source, path).

        Failed parses are not cached: the error goes to this caller only and
        the next request for the same key parses again.
        """
        key = (source, str(path) if path is not None else None)
        return self._cache.get_or_try_insert(key, self._parse_uncached)

    def _parse_uncached(self, key: ParseKey) -> ParsedTemplate:
        source, path = key
        return ParsedTemplate(source, path, self._parser.parse(source, path))

    def cached_count(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    def __repr__(self) -> str:
        return f"SyntaxAndCache({self.syntax!r})"


@dataclass(frozen=True)
class EscaperEntry:
    extensions: frozenset[str]
    path: str


@dataclass(frozen=True, eq=False)
class Config:
    """
    Resolved configuration; immutable once built.

    Attributes:
        dirs: Template search directories, in lookup order
        syntaxes: Syntax name → syntax with its parse cache; always has "default"
        default_syntax: Name of the syntax used when a template names none
        escapers: User escapers first, then the built-in fallbacks
        whitespace: Policy for tag edges without an explicit mark
        config_path: Originating config file, if any
    """
    dirs: Tuple[Path, ...]
    syntaxes: Mapping[str, SyntaxAndCache]
    default_syntax: str
    escapers: Tuple[EscaperEntry, ...]
    whitespace: Whitespace
    config_path: Optional[str] = None

    def syntax(self, name: Optional[str] = None) -> SyntaxAndCache:
        name = name or self.default_syntax
        try:
            return self.syntaxes[name]
        except KeyError:
            raise UnknownSyntaxError(name, self.syntaxes.keys()) from None

    def find_template(self, path: str, start_at: Union[str, Path, None] = None) -> Path:
        """
        Locate a template file.

        With start_at (the including file), the path is first tried next to
        that file; then every search directory is tried in order.

        Raises:
            TemplateNotFoundError: Listing the path and all search directories
        """
        if start_at is not None:
            relative = Path(start_at).parent / path
            if relative.exists():
                return relative.resolve()
        for directory in self.dirs:
            rooted = directory / path
            if rooted.exists():
                return rooted.resolve()
        raise TemplateNotFoundError(path, self.dirs)

    def escaper_for(self, extension: str) -> str:
        """First escaper, in declaration order, whose extension set contains extension."""
        for entry in self.escapers:
            if extension in entry.extensions:
                return entry.path
        raise EscaperNotFoundError(extension, self.all_extensions())

    def all_extensions(self) -> Iterator[str]:
        for entry in self.escapers:
            yield from entry.extensions

    def clear_caches(self) -> None:
        for syntax in self.syntaxes.values():
            syntax.clear()


__all__ = [
    "Config",
    "EscaperEntry",
    "SyntaxAndCache",
    "DEFAULT_SYNTAX_NAME",
    "DEFAULT_DIR_NAME",
    "DEFAULT_ESCAPERS",
    "ESCAPER_PACKAGE",
]
