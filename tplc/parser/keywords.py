"""
Reserved identifiers of the generated code.

Macros become functions in the generated Python module, so their names must
not collide with Python keywords. The table is small and closed: it is
bucketed by name length and each bucket is scanned linearly.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

# Hard and soft keywords of current Python releases plus the method receiver.
# Fixed here so the table does not depend on the interpreter running tplc.
RESERVED_WORDS = (
    "False", "None", "True", "and", "as", "assert", "async", "await",
    "break", "class", "continue", "def", "del", "elif", "else", "except",
    "finally", "for", "from", "global", "if", "import", "in", "is",
    "lambda", "nonlocal", "not", "or", "pass", "raise", "return", "try",
    "while", "with", "yield",
    "_", "case", "match", "type",
    "self",
)


def _build_table(words: Iterable[str]) -> Tuple[Tuple[bytes, ...], ...]:
    encoded = sorted({w.encode("utf-8") for w in words})
    width = max(len(w) for w in encoded)
    buckets: List[List[bytes]] = [[] for _ in range(width + 1)]
    for word in encoded:
        buckets[len(word)].append(word.ljust(width, b"\0"))
    return tuple(tuple(bucket) for bucket in buckets)


KWS = _build_table(RESERVED_WORDS)
MAX_KW_LEN = len(KWS) - 1


def is_reserved(name: str) -> bool:
    """True if name cannot be used as a macro name."""
    raw = name.encode("utf-8")
    if len(raw) > MAX_KW_LEN:
        return False
    padded = raw.ljust(MAX_KW_LEN, b"\0")
    return any(padded == entry for entry in KWS[len(raw)])


__all__ = ["is_reserved", "KWS", "MAX_KW_LEN", "RESERVED_WORDS"]
