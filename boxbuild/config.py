"""Runtime configuration — env-driven settings and definition directory lookup.

Tunables come from ``BOX_*`` environment variables (or a ``.env`` file) via
pydantic-settings. The definition directory is resolved separately by
``resolve_definition_directory`` so that its priority order can be exercised
against any mapping instead of the real process environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from boxbuild.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFINITION_DIR_ENV = "BOX_DEFINITION_DIR"


class BoxSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export BOX_LOG_LEVEL=DEBUG
        export BOX_PODMAN_EXECUTABLE=/usr/local/bin/podman
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BOX_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "WARNING"

    # External collaborators
    podman_executable: str = "podman"
    self_command: str = "bx"  # what child shells call to source their preamble

    # Definition files are ``<name>.<definition_suffix>``
    definition_suffix: str = "box"


def _candidate_directory(environ: Mapping[str, str]) -> Path | None:
    """Return the first configured directory candidate, in priority order."""
    if explicit := environ.get(DEFINITION_DIR_ENV):
        return Path(explicit)

    if xdg_config := environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "box"

    if home := environ.get("HOME"):
        return Path(home) / ".config" / "box"

    return None


def resolve_definition_directory(environ: Mapping[str, str] | None = None) -> Path:
    """Determine (and create, if needed) the directory holding definitions.

    Checks, in order:

    - ``$BOX_DEFINITION_DIR``
    - ``$XDG_CONFIG_HOME/box``
    - ``$HOME/.config/box``

    Raises
    ------
    ConfigurationError
        If none of the variables are set, or the directory cannot be created.
    """
    if environ is None:
        environ = os.environ

    directory = _candidate_directory(environ)

    if directory is None:
        raise ConfigurationError(
            "Could not find a valid directory for definitions",
            hint=(
                "Box tries $BOX_DEFINITION_DIR, then $XDG_CONFIG_HOME/box, "
                "then $HOME/.config/box, in that order."
            ),
        )

    if not directory.exists():
        logger.info("Creating definition directory %s", directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                f"Failed to create definition directory {directory}: {exc}",
                hint="Do you have permission issues?",
            ) from exc

    return directory
