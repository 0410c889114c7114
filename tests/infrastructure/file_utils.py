"""
Utilities for creating files and directories in tests.
"""

from __future__ import annotations

import textwrap
from pathlib import Path


def write(p: Path, text: str) -> Path:
    """
    Write text to a file, creating parent directories as needed.

    Returns:
        The path that was written
    """
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p


def write_template(root: Path, name: str, text: str, *, directory: str = "templates") -> Path:
    """Write a template under root/<directory>/<name>."""
    return write(root / directory / name, text)


def write_config(root: Path, text: str, *, name: str = "tplc.toml") -> Path:
    """Write a dedented config file into the project root."""
    return write(root / name, textwrap.dedent(text).lstrip())
