from __future__ import annotations

from .once_map import OnceMap

__all__ = ["OnceMap"]
