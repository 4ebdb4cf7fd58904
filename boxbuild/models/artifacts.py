"""Artifact fingerprint models — what previous builds left behind."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# Annotation keys read back from images built through the shell preamble.
MANAGER_ANNOTATION = "manager"
MANAGER_VALUE = "box"
PATH_ANNOTATION = "box.path"
HASH_ANNOTATION = "box.hash"
TREE_ANNOTATION = "box.tree"


class ImageRecord(BaseModel):
    """The slice of ``podman image inspect`` output that change detection reads."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    image_id: str = Field(alias="Id")
    annotations: dict[str, str] | None = Field(default=None, alias="Annotations")

    @property
    def is_managed(self) -> bool:
        return (self.annotations or {}).get(MANAGER_ANNOTATION) == MANAGER_VALUE


class ArtifactFingerprint(BaseModel):
    """Hashes recorded on an image at the moment its build completed."""

    model_config = ConfigDict(frozen=True)

    path: Path
    content_hash: int
    tree_hash: int
