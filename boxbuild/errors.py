"""Base error types shared across boxbuild.

Component-specific errors live next to the component that raises them and
derive from ``BoxError`` so the CLI can render every user-facing failure the
same way: a message plus an optional actionable hint.
"""

from __future__ import annotations


class BoxError(Exception):
    """Base exception for all user-facing boxbuild failures."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class ConfigurationError(BoxError):
    """Raised when the runtime environment cannot be resolved into a usable config."""
