"""Shared test fixtures for boxbuild."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from boxbuild.core.artifact_registry import InMemoryArtifactRegistry
from boxbuild.core.definition_store import DefinitionStore


@pytest.fixture
def definition_dir(tmp_path: Path) -> Path:
    """Provide an empty definition directory."""
    directory = tmp_path / "definitions"
    directory.mkdir()
    return directory


@pytest.fixture
def store(definition_dir: Path) -> DefinitionStore:
    """Provide a DefinitionStore over the temp definition directory."""
    return DefinitionStore(definition_dir)


@pytest.fixture
def write_definition(definition_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write a ``<name>.box`` file with optional dependencies."""

    def _factory(
        name: str,
        depends_on: list[str] | None = None,
        body: str = "FROM fedora:latest\nCOMMIT\n",
        bang: str = "#!/bin/bash",
    ) -> Path:
        lines = [bang]
        if depends_on is not None:
            deps = ", ".join(f'"{d}"' for d in depends_on)
            lines.append(f"#~ depends_on = [{deps}]")
        lines.append(body)
        path = definition_dir / f"{name}.box"
        path.write_text("\n".join(lines), encoding="utf-8")
        return path

    return _factory


@pytest.fixture
def registry() -> InMemoryArtifactRegistry:
    """Provide an empty artifact registry (nothing built yet)."""
    return InMemoryArtifactRegistry()


@pytest.fixture
def console() -> Console:
    """A console that records output instead of printing it."""
    return Console(record=True, width=200, force_terminal=False)
