"""Dependency DAG over a build set: closure, tree hashes, cycle checks, ordering.

The graph enforces:
- Every declared dependency resolves to a node in the set.
- The graph is acyclic; a cycle is rejected at construction time, before
  anything can be built.
- A node's tree hash covers its own content hash and the content hashes of
  everything it transitively depends on.
- ``build_order`` places every dependency strictly before its dependents.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable

from boxbuild.core.hasher import combine, to_hex
from boxbuild.errors import BoxError
from boxbuild.models.definitions import Definition

logger = logging.getLogger(__name__)


class CyclicDependencyError(BoxError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(
            f"Cycle detected in definition dependency graph: {' -> '.join(cycle)}",
            hint="Remove one of the depends_on entries along the cycle.",
        )
        self.cycle = cycle


class UnresolvedDependencyError(BoxError):
    """Raised when a definition depends on a name missing from the build set."""


class MissingDependencyError(BoxError):
    """Raised when a declared dependency cannot be loaded during closure.

    Wraps the lookup failure so the message names the definition that
    declared the dependency. The lookup's hint is kept.
    """

    def __init__(self, dependent: str, dependency: str, cause: BoxError) -> None:
        super().__init__(
            f"Definition {dependent} depends on {dependency}, which could not be loaded: "
            f"{cause.message}",
            hint=cause.hint,
        )
        self.dependent = dependent
        self.dependency = dependency
        self.cause = cause


def expand_dependencies(
    definitions: Iterable[Definition],
    fetch: Callable[[str], Definition],
) -> tuple[list[Definition], list[Definition]]:
    """Pull in every transitive dependency of ``definitions``.

    ``fetch`` resolves a dependency name to a definition. A ``BoxError`` it
    raises is re-raised as ``MissingDependencyError``; anything else
    propagates unchanged. Names already present, requested or pulled in
    earlier, are never fetched twice.

    Returns ``(requested, transitive)``.
    """
    requested: list[Definition] = []
    known: set[str] = set()
    for definition in definitions:
        if definition.name in known:
            continue
        known.add(definition.name)
        requested.append(definition)

    transitive: list[Definition] = []
    queue = deque(requested)

    while queue:
        definition = queue.popleft()
        for name in definition.depends_on:
            if name in known:
                continue
            try:
                dependency = fetch(name)
            except BoxError as exc:
                raise MissingDependencyError(definition.name, name, exc) from exc
            logger.debug("Fetched dependency %s of %s", name, definition.name)
            known.add(name)
            transitive.append(dependency)
            queue.append(dependency)

    return requested, transitive


class DependencyGraph:
    """Directed acyclic graph of definitions, keyed by name.

    Edges run from a dependency to its dependents, so a forward walk in
    topological order yields dependencies first.
    """

    def __init__(self, definitions: Iterable[Definition]) -> None:
        self._nodes: dict[str, Definition] = {}
        for definition in definitions:
            # Name collisions: already present, skip re-adding.
            self._nodes.setdefault(definition.name, definition)

        self._order: dict[str, int] = {name: i for i, name in enumerate(self._nodes)}

        # Forward edges: name -> direct dependencies (deduplicated)
        self._dependencies: dict[str, list[str]] = {}
        # Reverse edges: name -> direct dependents
        self._dependents: dict[str, list[str]] = {name: [] for name in self._nodes}

        for name, definition in self._nodes.items():
            deps = list(dict.fromkeys(definition.depends_on))
            for dep in deps:
                if dep not in self._nodes:
                    raise UnresolvedDependencyError(
                        f"Definition {name} depends on {dep}, which is not in the build set",
                        hint="Resolve the build set with expand_dependencies first.",
                    )
                self._dependents[dep].append(name)
            self._dependencies[name] = deps

        self._propagated = False
        self._topo = self._topological_sort()

    # ------------------------------------------------------------------
    # Ordering and cycle detection
    # ------------------------------------------------------------------

    def _topological_sort(self) -> list[str]:
        """Kahn's algorithm, ties broken by insertion order."""
        in_degree = {name: len(deps) for name, deps in self._dependencies.items()}
        queue = deque(name for name in self._nodes if in_degree[name] == 0)
        result: list[str] = []

        while queue:
            node = queue.popleft()
            result.append(node)
            for dependent in sorted(self._dependents[node], key=self._order.__getitem__):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self._nodes):
            remaining = {name for name, deg in in_degree.items() if deg > 0}
            raise CyclicDependencyError(self._find_cycle(remaining))

        return result

    def _find_cycle(self, remaining: set[str]) -> list[str]:
        """Name one cycle among the nodes Kahn's algorithm could not place.

        Each leftover node still has at least one leftover dependency, so
        following dependencies from any of them must revisit a node.
        """
        start = min(remaining, key=self._order.__getitem__)
        path: list[str] = []
        seen: dict[str, int] = {}
        node = start
        while node not in seen:
            seen[node] = len(path)
            path.append(node)
            node = next(d for d in self._dependencies[node] if d in remaining)
        return path[seen[node]:] + [node]

    @property
    def build_order(self) -> list[Definition]:
        """All definitions, every dependency before its dependents."""
        return [self._nodes[name] for name in self._topo]

    # ------------------------------------------------------------------
    # Tree hashes
    # ------------------------------------------------------------------

    def propagate_tree_hashes(self) -> None:
        """Fold every transitive dependency's content hash into each tree hash.

        Walks dependency edges (the reverse of build edges) depth-first from
        every node. XOR makes the result independent of traversal order.
        """
        if self._propagated:
            raise RuntimeError("Tree hashes have already been propagated")

        for name, definition in self._nodes.items():
            for reachable in self._walk_dependencies(name):
                other = self._nodes[reachable]
                if definition.tree_hash != other.content_hash:
                    definition.tree_hash = combine(definition.tree_hash, other.content_hash)
            logger.debug("Tree hash of %s is %s", name, to_hex(definition.tree_hash))

        self._propagated = True

    def _walk_dependencies(self, start: str) -> list[str]:
        """Depth-first preorder over dependency edges, ``start`` included."""
        visited: set[str] = set()
        order: list[str] = []
        stack = [start]
        while stack:
            node = stack.pop()
            if node in visited:
                continue
            visited.add(node)
            order.append(node)
            stack.extend(reversed(self._dependencies[node]))
        return order

    def __getitem__(self, name: str) -> Definition:
        return self._nodes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)
