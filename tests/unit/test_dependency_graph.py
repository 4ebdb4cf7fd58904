"""Tests for the DependencyGraph — closure, tree hashes, cycles, ordering."""

from __future__ import annotations

import random
from functools import reduce
from pathlib import Path

import pytest

from boxbuild.core.definition_store import DefinitionNotFoundError
from boxbuild.core.dependency_graph import (
    CyclicDependencyError,
    DependencyGraph,
    MissingDependencyError,
    UnresolvedDependencyError,
    expand_dependencies,
)
from boxbuild.core.hasher import content_hash
from boxbuild.models.definitions import Definition, DefinitionMetadata


def make_definition(name: str, depends_on: list[str] | None = None) -> Definition:
    return Definition(
        path=Path(f"/defs/{name}.box"),
        bang="#!/bin/sh",
        metadata=DefinitionMetadata(depends_on=depends_on or []),
        content_hash=content_hash(f"definition {name}".encode()),
    )


def diamond() -> list[Definition]:
    """app -> (web, worker) -> base"""
    return [
        make_definition("app", ["web", "worker"]),
        make_definition("web", ["base"]),
        make_definition("worker", ["base"]),
        make_definition("base"),
    ]


def xor_of(*names: str) -> int:
    return reduce(lambda acc, n: acc ^ make_definition(n).content_hash, names, 0)


class TestExpandDependencies:
    def test_pulls_in_transitive_dependencies(self):
        universe = {d.name: d for d in diamond()}
        requested, transitive = expand_dependencies([universe["app"]], universe.__getitem__)
        assert [d.name for d in requested] == ["app"]
        assert sorted(d.name for d in transitive) == ["base", "web", "worker"]

    def test_each_name_fetched_once(self):
        universe = {d.name: d for d in diamond()}
        fetched: list[str] = []

        def fetch(name: str) -> Definition:
            fetched.append(name)
            return universe[name]

        expand_dependencies([universe["app"]], fetch)
        assert sorted(fetched) == ["base", "web", "worker"]

    def test_requested_names_are_not_refetched(self):
        universe = {d.name: d for d in diamond()}
        requested, transitive = expand_dependencies(
            [universe["app"], universe["base"]], universe.__getitem__
        )
        assert len(requested) == 2
        assert "base" not in [d.name for d in transitive]

    def test_duplicate_requests_collapse(self):
        base = make_definition("base")
        requested, transitive = expand_dependencies([base, make_definition("base")], lambda n: base)
        assert len(requested) == 1
        assert transitive == []

    def test_one_requested_one_transitive(self):
        x = make_definition("x", ["y"])
        y = make_definition("y")
        requested, transitive = expand_dependencies([x], {"y": y}.__getitem__)
        assert (len(requested), len(transitive)) == (1, 1)

    def test_lookup_failure_names_the_dependent(self):
        def fetch(name: str) -> Definition:
            raise DefinitionNotFoundError(name, suggestion="mission")

        with pytest.raises(MissingDependencyError) as info:
            expand_dependencies([make_definition("app", ["missing"])], fetch)

        err = info.value
        assert (err.dependent, err.dependency) == ("app", "missing")
        assert "app depends on missing" in err.message
        assert err.hint == "Did you mean 'mission'?"
        assert isinstance(err.__cause__, DefinitionNotFoundError)

    def test_non_box_errors_propagate_unchanged(self):
        with pytest.raises(KeyError):
            expand_dependencies([make_definition("app", ["missing"])], {}.__getitem__)


class TestDependencyGraph:
    def test_builds_from_definitions(self):
        graph = DependencyGraph(diamond())
        assert len(graph) == 4
        assert "base" in graph
        assert "nope" not in graph

    def test_topological_order(self):
        order = [d.name for d in DependencyGraph(diamond()).build_order]
        assert order.index("base") < order.index("web")
        assert order.index("base") < order.index("worker")
        assert order.index("web") < order.index("app")
        assert order.index("worker") < order.index("app")

    def test_order_is_deterministic(self):
        first = [d.name for d in DependencyGraph(diamond()).build_order]
        second = [d.name for d in DependencyGraph(diamond()).build_order]
        assert first == second == ["base", "web", "worker", "app"]

    def test_every_dependency_precedes_dependents_in_random_dags(self):
        rng = random.Random(1234)
        for _ in range(25):
            names = [f"n{i}" for i in range(12)]
            definitions = [
                make_definition(name, rng.sample(names[:i], k=min(i, rng.randint(0, 3))))
                for i, name in enumerate(names)
            ]
            rng.shuffle(definitions)
            order = [d.name for d in DependencyGraph(definitions).build_order]
            for d in definitions:
                for dep in d.depends_on:
                    assert order.index(dep) < order.index(d.name)

    def test_duplicate_edges_collapse(self):
        graph = DependencyGraph([make_definition("app", ["base", "base"]), make_definition("base")])
        assert [d.name for d in graph.build_order] == ["base", "app"]

    def test_name_collision_keeps_first(self):
        first = make_definition("base")
        second = Definition(
            path=Path("/elsewhere/base.box"), bang="#!/bin/sh", content_hash=1
        )
        graph = DependencyGraph([first, second])
        assert len(graph) == 1
        assert graph["base"] is first

    def test_unresolved_dependency_rejected(self):
        with pytest.raises(UnresolvedDependencyError):
            DependencyGraph([make_definition("app", ["ghost"])])

    def test_two_node_cycle_rejected(self):
        with pytest.raises(CyclicDependencyError) as info:
            DependencyGraph([make_definition("a", ["b"]), make_definition("b", ["a"])])
        assert info.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(info.value)

    def test_self_dependency_rejected(self):
        with pytest.raises(CyclicDependencyError) as info:
            DependencyGraph([make_definition("a", ["a"])])
        assert info.value.cycle == ["a", "a"]

    def test_cycle_behind_acyclic_prefix_is_named(self):
        with pytest.raises(CyclicDependencyError) as info:
            DependencyGraph([
                make_definition("root"),
                make_definition("app", ["root", "x"]),
                make_definition("x", ["y"]),
                make_definition("y", ["x"]),
            ])
        cycle = info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"x", "y"}


class TestTreeHashPropagation:
    def test_leaf_tree_hash_is_content_hash(self):
        graph = DependencyGraph(diamond())
        graph.propagate_tree_hashes()
        base = graph["base"]
        assert base.tree_hash == base.content_hash

    def test_tree_hash_is_xor_of_reachable_content_hashes(self):
        graph = DependencyGraph(diamond())
        graph.propagate_tree_hashes()
        assert graph["web"].tree_hash == xor_of("web", "base")
        # base is reachable twice but contributes once
        assert graph["app"].tree_hash == xor_of("app", "web", "worker", "base")

    def test_declaration_order_does_not_matter(self):
        forward = DependencyGraph([
            make_definition("app", ["web", "worker"]),
            make_definition("web", ["base"]),
            make_definition("worker", ["base"]),
            make_definition("base"),
        ])
        shuffled = DependencyGraph([
            make_definition("base"),
            make_definition("worker", ["base"]),
            make_definition("app", ["worker", "web"]),
            make_definition("web", ["base"]),
        ])
        forward.propagate_tree_hashes()
        shuffled.propagate_tree_hashes()
        for name in ("app", "web", "worker", "base"):
            assert forward[name].tree_hash == shuffled[name].tree_hash

    def test_dependency_change_changes_dependent_tree_hash(self):
        before = DependencyGraph(diamond())
        before.propagate_tree_hashes()

        changed = diamond()
        changed[3] = Definition(
            path=Path("/defs/base.box"), bang="#!/bin/sh", content_hash=content_hash(b"new base")
        )
        after = DependencyGraph(changed)
        after.propagate_tree_hashes()

        assert after["app"].content_hash == before["app"].content_hash
        assert after["app"].tree_hash != before["app"].tree_hash

    def test_content_hash_untouched(self):
        graph = DependencyGraph(diamond())
        graph.propagate_tree_hashes()
        assert graph["app"].content_hash == make_definition("app").content_hash

    def test_propagates_only_once(self):
        graph = DependencyGraph(diamond())
        graph.propagate_tree_hashes()
        with pytest.raises(RuntimeError):
            graph.propagate_tree_hashes()
