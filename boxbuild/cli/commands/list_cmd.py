"""``bx list`` — show known definitions and their declared dependencies."""

from __future__ import annotations

from rich.markup import escape
from rich.table import Table

from boxbuild.cli._rendering import fail, out
from boxbuild.core.definition_store import DefinitionStore
from boxbuild.errors import BoxError


def list_cmd() -> None:
    """List every definition in the definition directory."""
    try:
        store = DefinitionStore.from_environment()
        definitions = store.enumerate()
    except BoxError as exc:
        fail(exc)

    if not definitions:
        out.print(f"[dim]No definitions in {escape(str(store.directory))}.[/dim]")
        return

    table = Table(title="Definitions")
    table.add_column("Name", style="cyan")
    table.add_column("Depends on")
    table.add_column("Hash", style="green")
    table.add_column("Path", style="dim")

    for d in definitions:
        table.add_row(
            escape(d.name),
            escape(", ".join(d.depends_on)) or "-",
            d.content_hex,
            escape(str(d.path)),
        )

    out.print(table)
