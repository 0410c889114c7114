"""
Utilities for working with the CLI in tests.
"""

import json
import os
import subprocess
import sys
from pathlib import Path

# Repository root, so the subprocess imports this checkout of tplc.
REPO_ROOT = Path(__file__).resolve().parents[2]


def run_cli(root: Path, *args: str) -> subprocess.CompletedProcess:
    """
    Run tplc.cli with the given arguments inside root.

    Returns:
        CompletedProcess with captured stdout/stderr
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), env.get("PYTHONPATH")]))
    env.pop("TPLC_PROJECT_ROOT", None)
    return subprocess.run(
        [sys.executable, "-m", "tplc.cli", *args],
        cwd=root, env=env, capture_output=True, text=True, encoding="utf-8"
    )


def jload(s: str):
    return json.loads(s)
