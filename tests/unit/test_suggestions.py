"""Tests for fuzzy name suggestions."""

from __future__ import annotations

from boxbuild.core.suggestions import closest_name


class TestClosestName:
    def test_exact_match_wins(self):
        assert closest_name("rust", ["rust", "rst", "cst", "ooo", "bat"]) == "rust"

    def test_single_edit(self):
        assert closest_name("fob", ["foo", "bar", "baz"]) == "foo"

    def test_case_insensitive(self):
        assert closest_name("FEDORA", ["fedora", "arch"]) == "fedora"

    def test_no_candidates(self):
        assert closest_name("anything", []) is None

    def test_always_returns_something_when_candidates_exist(self):
        assert closest_name("zzzzzz", ["abc"]) == "abc"
