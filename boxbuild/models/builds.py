"""Build plan and report models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from boxbuild.models.definitions import Definition


class BuildDecision(str, Enum):
    """Why a definition was (or was not) built."""

    FORCED = "forced"
    NEW = "new"  # no artifact recorded for this path
    CHANGED = "changed"  # content or tree hash differs from the artifact
    UNCHANGED = "unchanged"

    @property
    def should_build(self) -> bool:
        return self is not BuildDecision.UNCHANGED


class BuildPlan(BaseModel):
    """A resolved, transitively closed, topologically ordered build set."""

    model_config = ConfigDict(frozen=True)

    definitions: list[Definition]
    requested: int
    transitive: int

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.definitions]

    def __len__(self) -> int:
        return len(self.definitions)


class BuildOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    decision: BuildDecision


class BuildReport(BaseModel):
    """Outcomes of a build set walk, in execution order."""

    outcomes: list[BuildOutcome] = []

    def record(self, name: str, decision: BuildDecision) -> None:
        self.outcomes.append(BuildOutcome(name=name, decision=decision))

    @property
    def built(self) -> list[str]:
        return [o.name for o in self.outcomes if o.decision.should_build]

    @property
    def skipped(self) -> list[str]:
        return [o.name for o in self.outcomes if not o.decision.should_build]
