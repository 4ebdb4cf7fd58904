"""Main Typer application — imports and registers all CLI commands.

Entry point: ``bx`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer

from boxbuild.cli.commands.build import build_cmd
from boxbuild.cli.commands.init import init_cmd
from boxbuild.cli.commands.list_cmd import list_cmd
from boxbuild.cli.commands.manage import create_cmd, delete_cmd, edit_cmd
from boxbuild.config import BoxSettings

app = typer.Typer(
    name="bx",
    help="Box: build container images from scripted definitions, incrementally.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Configure logging before any command runs."""
    level = "DEBUG" if verbose else BoxSettings().log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
app.command(name="build", help="Build definitions and their dependencies.")(build_cmd)
app.command(name="list", help="List known definitions.")(list_cmd)
app.command(name="init", help="Print the shell preamble sourced by definitions.")(init_cmd)
app.command(name="create", help="Create a new definition.")(create_cmd)
app.command(name="edit", help="Edit an existing definition.")(edit_cmd)
app.command(name="delete", help="Delete a definition.")(delete_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
