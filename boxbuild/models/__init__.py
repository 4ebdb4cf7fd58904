"""boxbuild data models — all Pydantic v2."""

from boxbuild.models.artifacts import ArtifactFingerprint, ImageRecord
from boxbuild.models.builds import BuildDecision, BuildOutcome, BuildPlan, BuildReport
from boxbuild.models.definitions import Definition, DefinitionMetadata

__all__ = [
    # definitions
    "Definition",
    "DefinitionMetadata",
    # artifacts
    "ArtifactFingerprint",
    "ImageRecord",
    # builds
    "BuildDecision",
    "BuildOutcome",
    "BuildPlan",
    "BuildReport",
]
