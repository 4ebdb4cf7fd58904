"""``bx init SHELL`` — print the preamble a definition's shell sources."""

from __future__ import annotations

import typer

from boxbuild.shell import ShellFamily, load_preamble


def init_cmd(
    shell: ShellFamily = typer.Argument(
        ...,
        help="Shell family to emit the preamble for.",
    ),
) -> None:
    """Print the shell initialization routine.

    Definitions evaluate this before their body runs, e.g.
    ``eval "$(bx init posix)"`` or ``bx init fish | source``.
    """
    typer.echo(load_preamble(shell), nl=False)
