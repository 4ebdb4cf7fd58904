"""Fuzzy "did you mean" lookups for mistyped definition names."""

from __future__ import annotations

from collections.abc import Iterable

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein


def closest_name(name: str, candidates: Iterable[str]) -> str | None:
    """Return the candidate with the smallest case-insensitive edit distance.

    Returns None when there are no candidates at all.
    """
    choices = sorted(set(candidates))
    if not choices:
        return None

    match = process.extractOne(
        name,
        choices,
        scorer=Levenshtein.distance,
        processor=str.lower,
    )
    return match[0] if match else None
