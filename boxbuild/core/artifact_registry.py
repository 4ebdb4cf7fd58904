"""Change-detection oracle — hashes recorded on previously built images.

The external builder owns these records: the shell preamble stamps every
image with ``box.path``, ``box.hash`` and ``box.tree`` annotations when the
build starts, and the image only exists once the build commits. boxbuild
reads them here and never writes them.

Matching keys solely on the definition path. Renaming or moving an unchanged
definition therefore forces a rebuild.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from boxbuild.core.hasher import from_hex
from boxbuild.errors import BoxError
from boxbuild.models.artifacts import (
    HASH_ANNOTATION,
    PATH_ANNOTATION,
    TREE_ANNOTATION,
    ArtifactFingerprint,
    ImageRecord,
)

logger = logging.getLogger(__name__)

Fingerprints = dict[Path, ArtifactFingerprint]

_IMAGE_RECORDS = TypeAdapter(list[ImageRecord])


class RegistryError(BoxError):
    """Raised when the external builder cannot be queried."""


class ArtifactRecordError(RuntimeError):
    """A managed image lacks well-formed hash annotations.

    This is an invariant violation, not a soft skip: an artifact that cannot
    be reasoned about must not silently turn into a rebuild or a skip.
    """


class ArtifactRegistry(Protocol):
    """Anything that can report the fingerprints of built artifacts."""

    def fingerprints(self) -> Fingerprints: ...


def fingerprint_from_record(record: ImageRecord) -> ArtifactFingerprint:
    """Extract the recorded hashes from a managed image."""
    annotations = record.annotations or {}

    missing = [
        key
        for key in (PATH_ANNOTATION, HASH_ANNOTATION, TREE_ANNOTATION)
        if key not in annotations
    ]
    if missing:
        raise ArtifactRecordError(
            f"Image {record.image_id} is missing annotation(s): {', '.join(missing)}"
        )

    try:
        return ArtifactFingerprint(
            path=Path(annotations[PATH_ANNOTATION]),
            content_hash=from_hex(annotations[HASH_ANNOTATION]),
            tree_hash=from_hex(annotations[TREE_ANNOTATION]),
        )
    except ValueError as exc:
        raise ArtifactRecordError(
            f"Image {record.image_id} carries a malformed hash annotation: {exc}"
        ) from exc


def index_fingerprints(records: list[ImageRecord]) -> Fingerprints:
    """Map definition path to fingerprint over the managed images only.

    When several images record the same path, the last one wins.
    """
    result: Fingerprints = {}
    for record in records:
        if not record.is_managed:
            continue
        fingerprint = fingerprint_from_record(record)
        result[fingerprint.path] = fingerprint
    return result


class PodmanArtifactRegistry:
    """Reads image annotations through the ``podman`` CLI.

    Parameters
    ----------
    executable:
        The podman binary to invoke.
    """

    def __init__(self, executable: str = "podman") -> None:
        self.executable = executable

    def _run(self, *args: str) -> str:
        command = [self.executable, *args]
        logger.debug("Running %s", command)
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise RegistryError(
                f"Failed to run {self.executable}: {exc}",
                hint="Is podman installed and on your PATH?",
            ) from exc

        if result.returncode != 0:
            raise RegistryError(
                f"Fault when enumerating images for change detection: "
                f"{' '.join(command)} exited with status {result.returncode}: "
                f"{result.stderr.strip()}",
            )
        return result.stdout

    def records(self) -> list[ImageRecord]:
        """Inspect every local image."""
        image_ids = self._run("image", "ls", "--all", "--quiet", "--no-trunc").split()
        if not image_ids:
            return []

        # Multi-tagged images are listed once per tag.
        image_ids = list(dict.fromkeys(image_ids))
        output = self._run("image", "inspect", "--format", "json", *image_ids)
        try:
            return _IMAGE_RECORDS.validate_json(output)
        except ValidationError as exc:
            raise RegistryError(f"Unexpected output from podman image inspect: {exc}") from exc

    def fingerprints(self) -> Fingerprints:
        fingerprints = index_fingerprints(self.records())
        logger.debug("Path -> hash mapping computed for %d image(s)", len(fingerprints))
        return fingerprints


class InMemoryArtifactRegistry:
    """A registry backed by a plain mapping, for tests and dry runs."""

    def __init__(self, fingerprints: list[ArtifactFingerprint] | None = None) -> None:
        self._fingerprints: Fingerprints = {}
        for fingerprint in fingerprints or []:
            self.record(fingerprint)

    def record(self, fingerprint: ArtifactFingerprint) -> None:
        self._fingerprints[fingerprint.path] = fingerprint

    def fingerprints(self) -> Fingerprints:
        return dict(self._fingerprints)
