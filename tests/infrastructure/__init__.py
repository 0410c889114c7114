"""
Shared test infrastructure for tplc.

Modules:
- file_utils: Creating template and config files
- cli_utils: Running the tplc CLI in a subprocess
"""

from .file_utils import write, write_config, write_template
from .cli_utils import run_cli, jload

__all__ = [
    "write",
    "write_config",
    "write_template",
    "run_cli",
    "jload",
]
