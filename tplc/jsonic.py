from __future__ import annotations

import json
from typing import Any


def dumps(obj: Any) -> str:
    """
    Minimal JSON dumper for CLI responses.

    Compact, non-ASCII kept as is; the CLI decides about the trailing newline.
    """
    return json.dumps(obj, ensure_ascii=False)
