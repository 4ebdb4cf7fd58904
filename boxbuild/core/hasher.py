"""Content hashing helpers for change detection.

Definitions are fingerprinted with xxHash64: fast, deterministic across runs
and platforms, and not cryptographic. Tree hashes are combined with XOR,
which is commutative and self-inverse, so the order in which dependencies
are folded in never changes the result.
"""

from __future__ import annotations

import re

import xxhash

_HEX64 = re.compile(r"[0-9a-fA-F]{1,16}")


def content_hash(data: bytes) -> int:
    """Return the 64-bit xxHash of raw bytes as an unsigned integer."""
    return xxhash.xxh64_intdigest(data)


def combine(tree: int, other: int) -> int:
    """Fold another content hash into a tree hash."""
    return tree ^ other


def to_hex(value: int) -> str:
    """Lowercase hex, no padding and no prefix (the annotation format)."""
    return f"{value:x}"


def from_hex(text: str) -> int:
    """Parse an annotation hash back into an integer.

    Raises ``ValueError`` unless ``text`` is a 64-bit hexadecimal number.
    """
    if not _HEX64.fullmatch(text):
        raise ValueError(f"{text!r} is not a 64-bit hexadecimal number")
    return int(text, 16)
