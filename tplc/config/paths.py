from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigFileError

# Default config file, looked up in the project root.
CONFIG_FILE_NAME = "tplc.toml"
YAML_SUFFIXES = (".yaml", ".yml")

_yaml = YAML(typ="safe")


def config_file_path(root: Path, config_path: Optional[str] = None) -> Path:
    """Explicit config path (relative to root) or the default `tplc.toml`."""
    return (root / (config_path or CONFIG_FILE_NAME)).resolve()


def read_config_file(root: Path, config_path: Optional[str] = None) -> str:
    """
    Read config text.

    A missing default file means "all defaults" and yields "". An explicitly
    requested file that does not exist is an error.
    """
    path = config_file_path(root, config_path)
    if path.is_file():
        return path.read_text(encoding="utf-8")
    if config_path:
        raise ConfigFileError(f"config file not found: {path}")
    return ""


def decode_config_text(text: str, config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Decode config text into a mapping.

    TOML by default; YAML when the config path has a .yaml/.yml suffix.
    """
    name = Path(config_path).name if config_path else CONFIG_FILE_NAME
    if config_path and config_path.lower().endswith(YAML_SUFFIXES):
        try:
            raw = _yaml.load(text) or {}
        except YAMLError as e:
            raise ConfigFileError(f"invalid YAML in {name}: {e}", config_path) from None
        if not isinstance(raw, dict):
            raise ConfigFileError(f"YAML must be a mapping: {name}", config_path)
        return raw
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigFileError(f"invalid TOML in {name}: {e}", config_path) from None


__all__ = ["CONFIG_FILE_NAME", "config_file_path", "read_config_file", "decode_config_text"]
