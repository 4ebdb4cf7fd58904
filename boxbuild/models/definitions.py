"""Definition models — one scripted recipe per container image."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator

from boxbuild.core.hasher import to_hex


class DefinitionMetadata(BaseModel):
    """TOML frontmatter embedded in ``#~`` comment lines of a definition."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    depends_on: list[str] = []  # names of definitions this one builds on


class Definition(BaseModel):
    """A parsed definition file.

    Everything except ``tree_hash`` is fixed at parse time. ``tree_hash``
    starts out equal to ``content_hash`` and is reassigned exactly once, by
    the dependency graph, to cover the transitive dependency closure.
    """

    path: Path
    bang: str  # first line, the interpreter directive
    metadata: DefinitionMetadata = DefinitionMetadata()
    content_hash: int
    tree_hash: int = -1  # hashes are unsigned; negative means "seed from content_hash"

    @model_validator(mode="after")
    def _seed_tree_hash(self) -> Definition:
        if self.tree_hash < 0:
            self.tree_hash = self.content_hash
        return self

    @property
    def name(self) -> str:
        """File name minus extension."""
        return self.path.stem

    @property
    def depends_on(self) -> list[str]:
        return list(self.metadata.depends_on)

    @property
    def content_hex(self) -> str:
        return to_hex(self.content_hash)

    @property
    def tree_hex(self) -> str:
        return to_hex(self.tree_hash)
