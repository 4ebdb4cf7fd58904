"""Build contract — runs a definition's script against the external builder.

The interpreter is chosen from the definition's first line. Fish gets its
own invocation flow (the script is passed as a file and the preamble is
sourced through ``-C``); every other directive is treated as a
POSIX-compatible shell whose path is the directive minus ``#!``.

Each child sees five injected variables which the preamble turns into image
annotations:

    __BOX_BUILD_PATH  absolute definition path
    __BOX_BUILD_DIR   directory containing the definition
    __BOX_BUILD_HASH  content hash (lowercase hex)
    __BOX_BUILD_TREE  tree hash (lowercase hex)
    __BOX_BUILD_NAME  definition name
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable
from typing import Literal, Protocol

from pydantic import BaseModel, ConfigDict
from rich.console import Console
from rich.markup import escape

from boxbuild.errors import BoxError
from boxbuild.models.definitions import Definition

logger = logging.getLogger(__name__)

SHEBANG = "#!"


class BuildError(BoxError):
    """Raised when a definition's build process fails."""


class InvalidInterpreterError(BuildError):
    """Raised when no interpreter can be derived from the directive."""


class FishInterpreter(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["fish"] = "fish"

    def command(self, definition: Definition, script: str, self_command: str) -> list[str]:
        return ["fish", "-C", f"{self_command} init fish | source", str(definition.path)]


class PosixInterpreter(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["posix"] = "posix"
    executable: str

    def command(self, definition: Definition, script: str, self_command: str) -> list[str]:
        wrapped = f'eval "$({self_command} init posix)"\n(\n{script}\n)'
        return [self.executable, "-c", wrapped]


def select_interpreter(bang: str) -> FishInterpreter | PosixInterpreter:
    """Pick the invocation flow for an interpreter directive."""
    if "fish" in bang:
        return FishInterpreter()

    executable = bang.removeprefix(SHEBANG).strip()
    if not executable:
        raise InvalidInterpreterError(
            f"Shebang {bang!r} is invalid: could not determine the interpreter path",
            hint="Did you make a typo or forget a shebang?",
        )
    return PosixInterpreter(executable=executable)


def build_environment(
    definition: Definition, base: dict[str, str] | None = None
) -> dict[str, str]:
    """The child environment: ``base`` (default: ours) plus the build variables."""
    env = dict(os.environ if base is None else base)
    env.update(
        {
            "__BOX_BUILD_PATH": str(definition.path),
            "__BOX_BUILD_DIR": str(definition.path.parent),
            "__BOX_BUILD_HASH": definition.content_hex,
            "__BOX_BUILD_TREE": definition.tree_hex,
            "__BOX_BUILD_NAME": definition.name,
        }
    )
    return env


class Builder(Protocol):
    def build(self, definition: Definition) -> None: ...


class ScriptBuilder:
    """Builds definitions by spawning their interpreter as a blocking child.

    Parameters
    ----------
    self_command:
        How children invoke this tool to fetch their preamble.
    console:
        Where progress and warnings are printed.
    runner:
        Process launcher, ``subprocess.run`` compatible.
    """

    def __init__(
        self,
        self_command: str = "bx",
        console: Console | None = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.self_command = self_command
        self.console = console or Console(stderr=True)
        self._runner = runner

    def _warn_missing(self, definition: Definition, script: str) -> None:
        for keyword in ("FROM", "COMMIT"):
            if keyword not in script:
                self.console.print(
                    f"[bold yellow]Warning[/bold yellow]: definition "
                    f"[bold green]{escape(definition.name)}[/bold green] "
                    f"does not contain a {keyword} invocation"
                )

    def build(self, definition: Definition) -> None:
        """Run one definition to completion.

        Raises ``BuildError`` on a non-zero exit status, death by signal, or
        a failure to spawn the interpreter.
        """
        logger.info("Building definition at path %s", definition.path)
        self.console.print(
            f"[bold]Building definition[/bold] "
            f"[bold green]{escape(definition.name)}[/bold green]..."
        )

        try:
            script = definition.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise BuildError(f"Fault when reading in definition {definition.name}: {exc}") from exc

        self._warn_missing(definition, script)

        interpreter = select_interpreter(definition.bang)
        argv = interpreter.command(definition, script, self.self_command)
        logger.debug("Spawning %s for %s", argv[0], definition.name)

        try:
            result = self._runner(argv, env=build_environment(definition), check=False)
        except OSError as exc:
            raise BuildError(
                f"Fault when evaluating {interpreter.kind} definition {definition.name}: {exc}",
                hint=f"Is {argv[0]!r} installed and executable?",
            ) from exc

        if result.returncode < 0:
            raise BuildError(
                f"Build of {definition.name} was terminated by signal {-result.returncode}"
            )
        if result.returncode != 0:
            raise BuildError(
                f"Build of {definition.name} failed with exit status {result.returncode}"
            )

        logger.info("Built definition %s", definition.name)
