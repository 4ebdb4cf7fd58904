"""Shell preambles sourced by definitions before their body runs."""

from __future__ import annotations

from enum import Enum
from importlib import resources


class ShellFamily(str, Enum):
    POSIX = "posix"
    FISH = "fish"


_PREAMBLE_FILES = {
    ShellFamily.POSIX: "posix.sh",
    ShellFamily.FISH: "fish.fish",
}


def load_preamble(family: ShellFamily | str) -> str:
    """Return the initialization script for a shell family."""
    family = ShellFamily(family)
    return (
        resources.files(__name__)
        .joinpath(_PREAMBLE_FILES[family])
        .read_text(encoding="utf-8")
    )
