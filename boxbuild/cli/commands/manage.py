"""``bx create`` / ``bx edit`` / ``bx delete`` — editor-driven definition management."""

from __future__ import annotations

import logging

import click
import typer
from rich.markup import escape

from boxbuild.cli._rendering import console, fail
from boxbuild.core.definition_store import DefinitionStore
from boxbuild.errors import BoxError

logger = logging.getLogger(__name__)

TEMPLATE = "#!/bin/bash\n\n"


def create_cmd(
    name: str = typer.Argument(..., help="Name of the new definition."),
) -> None:
    """Create a new definition in $EDITOR."""
    try:
        store = DefinitionStore.from_environment()
        store.require_absent(name)

        data = click.edit(TEMPLATE, require_save=True, extension=f".{store.suffix}")
        if data is None:
            logger.warning("Definition creation aborted")
            console.print(f"Creation of definition {escape(name)} aborted.")
            return

        path = store.create(name, data)
    except BoxError as exc:
        fail(exc)

    console.print(f"[bold green]Created[/bold green] {escape(str(path))}")


def edit_cmd(
    name: str = typer.Argument(..., help="Name of the definition to edit."),
) -> None:
    """Edit an existing definition in $EDITOR."""
    try:
        store = DefinitionStore.from_environment()
        current = store.read(name)

        data = click.edit(current, require_save=True, extension=f".{store.suffix}")
        if data is None:
            logger.warning("Definition edit aborted")
            console.print("No changes detected.")
            return

        store.write(name, data)
    except BoxError as exc:
        fail(exc)

    console.print(f"[bold green]Updated[/bold green] {escape(name)}")


def delete_cmd(
    name: str = typer.Argument(..., help="Name of the definition to delete."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a definition file."""
    try:
        store = DefinitionStore.from_environment()
        store.require(name)

        if not yes and not typer.confirm(
            f"Are you sure you want to remove the definition {name!r}?"
        ):
            return

        store.delete(name)
    except BoxError as exc:
        fail(exc)

    console.print(f"[bold green]Deleted[/bold green] {escape(name)}")
