"""Shared console and error rendering for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from boxbuild.errors import BoxError

# Progress and diagnostics go to stderr; stdout is reserved for data.
console = Console(stderr=True)
out = Console()


def fail(exc: BoxError) -> NoReturn:
    """Print a BoxError with its hint and exit with status 1."""
    console.print(f"[bold red]Error:[/bold red] {escape(exc.message)}", soft_wrap=True)
    if exc.hint:
        console.print(f"[bold cyan]Hint:[/bold cyan] {escape(exc.hint)}", soft_wrap=True)
    raise typer.Exit(code=1)
