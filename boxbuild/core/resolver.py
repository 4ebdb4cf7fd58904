"""Build set resolver — the central coordinator for a ``bx build`` invocation.

Wires together the DefinitionStore, DependencyGraph, ArtifactRegistry and
Builder:

1. Resolve the requested names (or every definition) into definitions.
2. Pull in transitive dependencies, build the graph (rejecting cycles),
   propagate tree hashes and order the set.
3. Walk the order, building each definition that is forced, new, or whose
   content or tree hash differs from its recorded artifact.

Builds are strictly sequential. The first failure aborts the walk; whatever
was built before it stays built.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape

from boxbuild.core.artifact_registry import ArtifactRegistry, Fingerprints, PodmanArtifactRegistry
from boxbuild.core.builder import Builder, ScriptBuilder
from boxbuild.core.definition_store import DefinitionLoadError, DefinitionStore
from boxbuild.core.dependency_graph import DependencyGraph, expand_dependencies
from boxbuild.errors import BoxError
from boxbuild.models.builds import BuildDecision, BuildPlan, BuildReport
from boxbuild.models.definitions import Definition

logger = logging.getLogger(__name__)


class NothingToBuildError(BoxError):
    """Raised when a build is requested with no definitions to operate on."""


def decide(
    definition: Definition, fingerprints: Fingerprints, force: bool = False
) -> BuildDecision:
    """Skip-or-build verdict for one definition."""
    if force:
        return BuildDecision.FORCED

    recorded = fingerprints.get(definition.path)
    if recorded is None:
        return BuildDecision.NEW

    if (
        recorded.content_hash != definition.content_hash
        or recorded.tree_hash != definition.tree_hash
    ):
        return BuildDecision.CHANGED

    return BuildDecision.UNCHANGED


class BuildSetResolver:
    """Resolves and executes build sets.

    Parameters
    ----------
    store:
        Source of definitions.
    registry:
        Change-detection oracle. Defaults to podman. Only consulted for
        non-forced builds.
    builder:
        Executes a single definition. Defaults to ``ScriptBuilder``.
    console:
        Where user-facing progress is reported.
    """

    def __init__(
        self,
        store: DefinitionStore,
        registry: ArtifactRegistry | None = None,
        builder: Builder | None = None,
        console: Console | None = None,
    ) -> None:
        self.store = store
        self.console = console or Console(stderr=True)
        self.registry = registry if registry is not None else PodmanArtifactRegistry()
        self.builder = builder if builder is not None else ScriptBuilder(console=self.console)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _requested(self, names: Sequence[str], all_definitions: bool) -> list[Definition]:
        if all_definitions:
            return self.store.enumerate()

        definitions: list[Definition] = []
        errors: list[BoxError] = []
        for name in dict.fromkeys(names):
            try:
                definitions.append(self.store.find(name))
            except BoxError as exc:
                errors.append(exc)

        if errors:
            raise DefinitionLoadError(errors)
        return definitions

    def resolve(self, names: Sequence[str] = (), all_definitions: bool = False) -> BuildPlan:
        """Turn a request into an ordered, tree-hashed, cycle-free build plan."""
        requested = self._requested(names, all_definitions)

        if not requested:
            raise NothingToBuildError(
                "No definitions found",
                hint=(
                    "Did you forget to provide the definition(s) to operate on? "
                    "To build every definition, pass -a/--all."
                ),
            )

        logger.debug(
            "Finished build set enumeration - got %d (all: %s)", len(requested), all_definitions
        )

        requested, transitive = expand_dependencies(requested, self.store.find)
        logger.debug("Resolved %d transitive dependencies", len(transitive))

        graph = DependencyGraph([*requested, *transitive])
        graph.propagate_tree_hashes()

        return BuildPlan(
            definitions=graph.build_order,
            requested=len(requested),
            transitive=len(transitive),
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def build_set(
        self,
        names: Sequence[str] = (),
        all_definitions: bool = False,
        force: bool = False,
    ) -> BuildReport:
        """Resolve a build set and build whatever is stale, in order.

        With ``force`` every definition is built and the registry is never
        queried.
        """
        plan = self.resolve(names, all_definitions)
        logger.debug("Build order: %s", ", ".join(plan.names))

        self.console.print(
            f"Building [bold green]{len(plan)}[/bold green] definitions "
            f"([bold green]{plan.requested}[/bold green] requested, "
            f"[bold yellow]{plan.transitive}[/bold yellow] transitive)"
        )

        fingerprints: Fingerprints = {} if force else self.registry.fingerprints()
        report = BuildReport()

        for definition in plan.definitions:
            decision = decide(definition, fingerprints, force)
            logger.debug("Decision for %s: %s", definition.name, decision.value)

            if decision.should_build:
                try:
                    self.builder.build(definition)
                except BoxError:
                    if report.built:
                        self.console.print(
                            f"[dim]Already built before the failure: "
                            f"{escape(', '.join(report.built))}[/dim]"
                        )
                    raise
            else:
                self.console.print(
                    f"[bold]Skipped definition[/bold] "
                    f"[bold yellow]{escape(definition.name)}[/bold yellow] (unchanged)"
                )
            report.record(definition.name, decision)

        logger.debug("Finished building definition set")
        return report
