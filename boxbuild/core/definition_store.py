"""Definition store — discovers, parses and manages ``*.box`` files.

A definition is a script whose first line is an interpreter directive and
whose ``#~``-prefixed comment lines, once the marker is stripped and the
lines are joined, form a TOML document declaring its dependencies::

    #!/bin/bash
    #~ depends_on = ["base"]
    FROM fedora:latest
    ...

Enumeration is all-or-nothing: every file that fails to parse is collected
into a single ``DefinitionLoadError`` instead of being skipped.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from boxbuild.config import BoxSettings, resolve_definition_directory
from boxbuild.core.hasher import content_hash
from boxbuild.core.suggestions import closest_name
from boxbuild.errors import BoxError
from boxbuild.models.definitions import Definition, DefinitionMetadata

logger = logging.getLogger(__name__)

METADATA_MARKER = "#~"


class DefinitionParseError(BoxError):
    """Raised when a single definition file cannot be read or parsed."""

    def __init__(self, path: Path, reason: str, hint: str | None = None) -> None:
        super().__init__(f"{path}: {reason}", hint=hint)
        self.path = path
        self.reason = reason


class DefinitionNotFoundError(BoxError):
    """Raised when no definition with the requested name exists."""

    def __init__(self, name: str, suggestion: str | None = None) -> None:
        hint = f"Did you mean '{suggestion}'?" if suggestion else "Did you make a typo?"
        super().__init__(
            f"Tried to operate on a definition ({name}) that does not exist",
            hint=hint,
        )
        self.name = name
        self.suggestion = suggestion


class DefinitionExistsError(BoxError):
    """Raised when creating a definition whose file is already present."""


class DefinitionLoadError(BoxError):
    """Composite error carrying every sub-failure of a multi-definition load."""

    def __init__(self, errors: list[BoxError]) -> None:
        self.errors = list(errors)
        lines = [f"Failed to load {len(self.errors)} definition(s)"]
        for err in self.errors:
            detail = f"Sub-error: {err.message}"
            if err.hint:
                detail += f" ({err.hint})"
            lines.append(f"  {detail}")
        super().__init__("\n".join(lines))


class DefinitionStore:
    """Reads definitions out of a single, flat directory.

    Parameters
    ----------
    directory:
        Directory holding the definition files. Subdirectories are ignored.
    suffix:
        File extension (without the dot) identifying definition files.
    """

    def __init__(self, directory: Path, suffix: str = "box") -> None:
        self.directory = Path(directory).absolute()
        self.suffix = suffix

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        settings: BoxSettings | None = None,
    ) -> DefinitionStore:
        """Build a store over the directory resolved from the environment."""
        settings = settings or BoxSettings()
        return cls(
            resolve_definition_directory(environ),
            suffix=settings.definition_suffix,
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _is_definition_file(self, path: Path) -> bool:
        # Broken symlinks are kept so that parse() can report them.
        if path.is_dir():
            return False
        return path.suffix == f".{self.suffix}"

    def _definition_paths(self) -> list[Path]:
        try:
            entries = sorted(self.directory.iterdir())
        except OSError as exc:
            raise BoxError(
                f"Fault when reading definition directory {self.directory}: {exc}",
                hint="Do you have permission issues?",
            ) from exc
        return [p for p in entries if self._is_definition_file(p)]

    def names(self) -> list[str]:
        """Return the name of every definition file, without parsing any."""
        return [p.stem for p in self._definition_paths()]

    def enumerate(self) -> list[Definition]:
        """Parse every definition in the directory.

        Raises ``DefinitionLoadError`` listing every file that failed.
        """
        definitions: list[Definition] = []
        errors: list[BoxError] = []

        for path in self._definition_paths():
            try:
                definitions.append(self.parse(path))
            except DefinitionParseError as exc:
                errors.append(exc)

        if errors:
            raise DefinitionLoadError(errors)

        return definitions

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}.{self.suffix}"

    def exists(self, name: str) -> bool:
        """Check whether a definition file exists, without parsing it."""
        return self.path_for(name).exists()

    def find(self, name: str) -> Definition:
        """Fetch and parse the definition whose file stem is ``name``."""
        for path in self._definition_paths():
            if path.stem == name:
                return self.parse(path)

        raise DefinitionNotFoundError(name, suggestion=self.suggest(name))

    def suggest(self, name: str) -> str | None:
        """Best-effort fuzzy match of ``name`` against known definitions."""
        try:
            candidates = self.names()
        except BoxError as exc:
            logger.warning("Failed to enumerate definitions for fuzzy matching: %s", exc)
            return None
        return closest_name(name, candidates)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, path: Path) -> Definition:
        """Read a file and parse it into a well-formed definition."""
        path = Path(path).absolute()
        logger.debug("Attempting to fetch definition from path %s", path)

        if path.is_symlink() and not path.exists():
            raise DefinitionParseError(
                path,
                "definition is a broken symbolic link",
                hint="You're probably using some sort of dotfiles manager - is it out of sync?",
            )

        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise DefinitionParseError(
                path,
                f"failed to read definition data: {exc}",
                hint="Do you have permission issues?",
            ) from exc

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DefinitionParseError(
                path,
                "definition is not valid UTF-8 text",
                hint="Definitions must be plain UTF-8 scripts.",
            ) from exc

        lines = text.splitlines()
        if not lines:
            raise DefinitionParseError(path, "encountered an empty definition")

        metadata = self._parse_metadata(path, lines)

        definition = Definition(
            path=path,
            bang=lines[0],
            metadata=metadata,
            content_hash=content_hash(raw),
        )
        logger.debug("Fetched definition %s from path %s", definition.name, path)
        return definition

    @staticmethod
    def _parse_metadata(path: Path, lines: list[str]) -> DefinitionMetadata:
        frontmatter = "".join(
            line[len(METADATA_MARKER):].strip() + "\n"
            for line in lines
            if line.startswith(METADATA_MARKER)
        )

        try:
            document = tomllib.loads(frontmatter)
        except tomllib.TOMLDecodeError as exc:
            raise DefinitionParseError(
                path,
                f"failed to deserialize TOML frontmatter: {exc}",
                hint="Did you make a typo?",
            ) from exc

        try:
            return DefinitionMetadata.model_validate(document)
        except ValidationError as exc:
            raise DefinitionParseError(
                path,
                f"invalid frontmatter: {exc.error_count()} field error(s): "
                + "; ".join(
                    f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}"
                    for e in exc.errors()
                ),
                hint="depends_on must be a list of definition names.",
            ) from exc

    # ------------------------------------------------------------------
    # File management
    # ------------------------------------------------------------------

    def create(self, name: str, content: str) -> Path:
        """Write a new definition file, refusing to overwrite an existing one."""
        path = self.require_absent(name)
        path.write_text(content, encoding="utf-8")
        logger.info("Created definition %s at %s", name, path)
        return path

    def read(self, name: str) -> str:
        return self.require(name).read_text(encoding="utf-8")

    def write(self, name: str, content: str) -> Path:
        """Replace the contents of an existing definition."""
        path = self.require(name)
        path.write_text(content, encoding="utf-8")
        logger.info("Updated definition %s", name)
        return path

    def delete(self, name: str) -> None:
        path = self.require(name)
        path.unlink()
        logger.info("Deleted definition %s", name)

    def require_absent(self, name: str) -> Path:
        """Return the path a new definition would take, if it is free."""
        path = self.path_for(name)
        if path.exists():
            raise DefinitionExistsError(
                f"Definition {name} already exists",
                hint="You may want to edit or delete it instead.",
            )
        return path

    def require(self, name: str) -> Path:
        """Return the path of an existing definition."""
        path = self.path_for(name)
        if not path.exists():
            raise DefinitionNotFoundError(name, suggestion=self.suggest(name))
        return path
