"""Box CLI — Typer-based command-line interface.

Provides the ``bx`` command with subcommands for building definitions,
listing them, managing them in an editor, and emitting the shell preamble
that build scripts source.

All output uses Rich for formatted terminal display.
"""
