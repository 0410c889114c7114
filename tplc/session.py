"""
Compilation session: owner of every memoized Config and, through them,
every parse cache.

Independent sessions share nothing, so tests and separate builds never see
each other's cached state.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from .cache import OnceMap
from .config import Config, build_config, read_config_file
from .expr.protocols import ExpressionGrammar

logger = logging.getLogger(__name__)

ROOT_ENV = "TPLC_PROJECT_ROOT"

ConfigKey = Tuple[str, Optional[str], Optional[str]]


def default_root() -> Path:
    env_root = os.environ.get(ROOT_ENV)
    return Path(env_root).resolve() if env_root else Path.cwd().resolve()


class CompilationSession:
    """
    Memoizes Config resolution by (source text, config path, per-template whitespace).

    Concurrent requests for one key compute once and share the result;
    failures are not remembered.
    """

    def __init__(self, root: Union[str, Path, None] = None, grammar: Optional[ExpressionGrammar] = None):
        self.root = Path(root).resolve() if root is not None else default_root()
        self.grammar = grammar
        self._configs: OnceMap[ConfigKey, Config] = OnceMap(name="config-cache")
        self._closed = False

    def config(
        self,
        source: str = "",
        config_path: Optional[str] = None,
        whitespace: Optional[str] = None,
    ) -> Config:
        """Resolved Config for config text; the same object for the same key."""
        self._check_open()
        key = (source, config_path, whitespace)
        return self._configs.get_or_try_insert(key, self._build)

    def load_config(self, config_path: Optional[str] = None, whitespace: Optional[str] = None) -> Config:
        """Read the config file (default `tplc.toml` under root) and resolve it."""
        self._check_open()
        source = read_config_file(self.root, config_path)
        return self.config(source, config_path, whitespace)

    def _build(self, key: ConfigKey) -> Config:
        source, config_path, whitespace = key
        return build_config(self.root, source, config_path, whitespace, self.grammar)

    def close(self) -> None:
        """Drop every cached Config and parsed template. The session is unusable afterwards."""
        if self._closed:
            return
        logger.debug("Closing session for %s (%d configs)", self.root, len(self._configs))
        for cfg in self._configs.values():
            cfg.clear_caches()
        self._configs.clear()
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("compilation session is closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "CompilationSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["CompilationSession", "default_root", "ROOT_ENV"]
