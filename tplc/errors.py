"""
Base exception for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from TplcUserError.

Programming errors and bugs should NOT inherit from TplcUserError;
they will propagate with full tracebacks.
"""

from __future__ import annotations


class TplcUserError(Exception):
    """
    Base class for all user-facing errors in the template compiler.

    These errors indicate problems that the user can fix:
    malformed delimiters, configuration issues, template syntax errors,
    missing template files, etc.
    """
    pass


__all__ = ["TplcUserError"]
