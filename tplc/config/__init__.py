"""
Configuration resolution: search directories, named syntaxes, whitespace
policy and escapers.
"""

from __future__ import annotations

from .errors import (
    ConfigError,
    ConfigFileError,
    DuplicateSyntaxError,
    EscaperNotFoundError,
    InvalidWhitespaceError,
    TemplateNotFoundError,
    UnknownDefaultSyntaxError,
    UnknownSyntaxError,
)
from .load import build_config, load_raw_config, parse_whitespace
from .model import Config, EscaperEntry, SyntaxAndCache, DEFAULT_SYNTAX_NAME
from .paths import CONFIG_FILE_NAME, read_config_file
from .typed import ConfigLoadError, load_typed

__all__ = [
    "Config",
    "EscaperEntry",
    "SyntaxAndCache",
    "DEFAULT_SYNTAX_NAME",
    "CONFIG_FILE_NAME",
    "build_config",
    "load_raw_config",
    "parse_whitespace",
    "read_config_file",
    "load_typed",
    "ConfigError",
    "ConfigFileError",
    "ConfigLoadError",
    "DuplicateSyntaxError",
    "EscaperNotFoundError",
    "InvalidWhitespaceError",
    "TemplateNotFoundError",
    "UnknownDefaultSyntaxError",
    "UnknownSyntaxError",
]
