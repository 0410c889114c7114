"""
Configuration and template lookup errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..errors import TplcUserError


class ConfigError(TplcUserError):
    """Invalid configuration; names the config file when it is known."""

    def __init__(self, message: str, config_path: Optional[str] = None):
        self.message = message
        self.config_path = config_path
        super().__init__(f"{message}\n --> {config_path}" if config_path else message)


class ConfigFileError(ConfigError):
    """Config file cannot be read or decoded."""
    pass


class DuplicateSyntaxError(ConfigError):
    def __init__(self, name: str, config_path: Optional[str] = None):
        self.name = name
        super().__init__(f"syntax {name!r} is already defined", config_path)


class UnknownDefaultSyntaxError(ConfigError):
    def __init__(self, name: str, config_path: Optional[str] = None):
        self.name = name
        super().__init__(f'default syntax "{name}" not found', config_path)


class UnknownSyntaxError(ConfigError):
    def __init__(self, name: str, known: Iterable[str]):
        self.name = name
        super().__init__(f"syntax {name!r} is not defined (known: {', '.join(sorted(known))})")


class InvalidWhitespaceError(ConfigError):
    def __init__(self, value: str, config_path: Optional[str] = None):
        self.value = value
        super().__init__(f'invalid value for `whitespace`: "{value}"', config_path)


class TemplateNotFoundError(TplcUserError):
    def __init__(self, path: str, dirs: Sequence[Path]):
        self.path = path
        self.dirs = list(dirs)
        super().__init__(
            f"template {path!r} not found in directories [{', '.join(repr(str(d)) for d in dirs)}]"
        )


class EscaperNotFoundError(TplcUserError):
    def __init__(self, extension: str, available: Iterable[str]):
        self.extension = extension
        names = sorted(set(available))
        self.available = names
        super().__init__(
            f"no escaper defined for extension {extension!r}. "
            f"You can define an escaper in the config file (named `tplc.toml` by default). "
            f"Available extensions: {', '.join(repr(n) for n in names)}"
        )


__all__ = [
    "ConfigError",
    "ConfigFileError",
    "DuplicateSyntaxError",
    "UnknownDefaultSyntaxError",
    "UnknownSyntaxError",
    "InvalidWhitespaceError",
    "TemplateNotFoundError",
    "EscaperNotFoundError",
]
