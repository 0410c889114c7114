from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Optional

from ..expr.protocols import ExpressionGrammar
from ..parser import Whitespace
from ..syntax import SyntaxDefinition, SyntaxDefinitionError
from .errors import DuplicateSyntaxError, InvalidWhitespaceError, UnknownDefaultSyntaxError
from .model import (
    DEFAULT_DIR_NAME,
    DEFAULT_ESCAPERS,
    DEFAULT_SYNTAX_NAME,
    ESCAPER_PACKAGE,
    Config,
    EscaperEntry,
    SyntaxAndCache,
)
from .paths import decode_config_text
from .raw import RawConfig, RawGeneral
from .typed import ConfigLoadError, load_typed

logger = logging.getLogger(__name__)


def parse_whitespace(value: str, config_path: Optional[str] = None) -> Whitespace:
    try:
        return Whitespace(value)
    except ValueError:
        raise InvalidWhitespaceError(value, config_path) from None


def load_raw_config(source: str, config_path: Optional[str] = None) -> RawConfig:
    """Decode and type-check config text; empty text means all defaults."""
    if not source.strip():
        return RawConfig()
    data = decode_config_text(source, config_path)
    try:
        return load_typed(RawConfig, data)
    except ConfigLoadError as e:
        raise ConfigLoadError(e.message, config_path) from None


def build_config(
    root: Path,
    source: str,
    config_path: Optional[str] = None,
    template_whitespace: Optional[str] = None,
    grammar: Optional[ExpressionGrammar] = None,
) -> Config:
    """
    Resolve config text into a Config (uncached; sessions memoize this).

    Args:
        root: Project root; search directories are joined onto it
        source: Config file contents ("" for all defaults)
        config_path: Where source came from, for messages and format detection
        template_whitespace: Per-template whitespace override; wins over [general]
        grammar: Expression grammar handed to every syntax's parser

    Raises:
        ConfigError: Malformed text, duplicate or unknown syntax names,
            invalid whitespace value
        SyntaxDefinitionError: Malformed delimiters, annotated with config_path
    """
    logger.debug("Resolving config (path=%s, whitespace=%s)", config_path, template_whitespace)
    raw = load_raw_config(source, config_path)
    general = raw.general or RawGeneral()

    if general.dirs is None:
        dirs = (root / DEFAULT_DIR_NAME,)
    else:
        dirs = tuple(root / d for d in general.dirs)

    whitespace = parse_whitespace(general.whitespace, config_path)
    if template_whitespace is not None:
        whitespace = parse_whitespace(template_whitespace, config_path)

    syntaxes: Dict[str, SyntaxAndCache] = {
        DEFAULT_SYNTAX_NAME: SyntaxAndCache(SyntaxDefinition(), grammar),
    }
    for raw_syntax in raw.syntax:
        if raw_syntax.name in syntaxes:
            raise DuplicateSyntaxError(raw_syntax.name, config_path)
        try:
            syntax = SyntaxDefinition.build(raw_syntax.overrides())
        except SyntaxDefinitionError as e:
            raise e.with_config_path(config_path)
        syntaxes[raw_syntax.name] = SyntaxAndCache(syntax, grammar)

    default_syntax = general.default_syntax or DEFAULT_SYNTAX_NAME
    if default_syntax not in syntaxes:
        raise UnknownDefaultSyntaxError(default_syntax, config_path)

    escapers: List[EscaperEntry] = [
        EscaperEntry(frozenset(e.extensions), e.path) for e in raw.escaper
    ]
    for extensions, name in DEFAULT_ESCAPERS:
        escapers.append(EscaperEntry(frozenset(extensions), f"{ESCAPER_PACKAGE}.{name}"))

    logger.debug(
        "Config resolved: dirs=%s, syntaxes=%s, default=%s, whitespace=%s",
        [str(d) for d in dirs], list(syntaxes), default_syntax, whitespace.value,
    )
    return Config(
        dirs=dirs,
        syntaxes=MappingProxyType(syntaxes),
        default_syntax=default_syntax,
        escapers=tuple(escapers),
        whitespace=whitespace,
        config_path=config_path,
    )


__all__ = ["build_config", "load_raw_config", "parse_whitespace"]
