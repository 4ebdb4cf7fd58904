"""``bx build`` — build definitions and their dependencies, skipping unchanged ones."""

from __future__ import annotations

import typer

from boxbuild.cli._rendering import console, fail
from boxbuild.config import BoxSettings
from boxbuild.core.artifact_registry import PodmanArtifactRegistry
from boxbuild.core.builder import ScriptBuilder
from boxbuild.core.definition_store import DefinitionStore
from boxbuild.core.resolver import BuildSetResolver
from boxbuild.errors import BoxError


def build_cmd(
    names: list[str] = typer.Argument(
        None,
        help="Definitions to build.",
        show_default=False,
    ),
    all_definitions: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Build every known definition.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Rebuild even if a definition and its dependencies are unchanged.",
    ),
) -> None:
    """Build one or more definitions.

    Dependencies declared with ``depends_on`` are pulled in automatically and
    built first. A definition is skipped when both its own content and the
    combined state of everything it depends on match the last built image.
    """
    settings = BoxSettings()

    try:
        store = DefinitionStore.from_environment(settings=settings)
        resolver = BuildSetResolver(
            store,
            registry=PodmanArtifactRegistry(settings.podman_executable),
            builder=ScriptBuilder(self_command=settings.self_command, console=console),
            console=console,
        )
        report = resolver.build_set(names or [], all_definitions=all_definitions, force=force)
    except BoxError as exc:
        fail(exc)

    console.print(
        f"[bold green]Done.[/bold green] "
        f"{len(report.built)} built, {len(report.skipped)} skipped."
    )
