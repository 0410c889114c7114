"""
tplc: compile-time core of a Jinja-like template compiler.

Typical use:

    with CompilationSession(root) as session:
        config = session.load_config()
        parsed = config.syntax().parse(source, path)
"""

from __future__ import annotations

from .config import Config, ConfigError, TemplateNotFoundError
from .errors import TplcUserError
from .input import TemplateInput
from .parser import ParseError, ParsedTemplate, Whitespace, Ws
from .session import CompilationSession
from .syntax import SyntaxDefinition, SyntaxDefinitionError

__all__ = [
    "CompilationSession",
    "Config",
    "ConfigError",
    "ParseError",
    "ParsedTemplate",
    "SyntaxDefinition",
    "SyntaxDefinitionError",
    "TemplateInput",
    "TemplateNotFoundError",
    "TplcUserError",
    "Whitespace",
    "Ws",
]
