"""Pydantic models for recorded scenarios."""

import time
import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from browser_grid.models.actions import Action, BaseAction, normalize_action_data
from browser_grid.variables import find_variables


def _new_scenario_id() -> str:
    return f"scenario-{uuid.uuid4().hex[:12]}"


def _canonical_steps(value: Any) -> Any:
    if isinstance(value, list):
        return [normalize_action_data(step) for step in value]
    return value


class ScenarioMetadata(BaseModel):
    """Bookkeeping for a scenario."""

    total_steps: int = 0
    duration: float = 0.0  # seconds spent recording
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)
    last_used: datetime | None = None
    variables_used: list[str] = Field(default_factory=list)


class Scenario(BaseModel):
    """A named, replayable sequence of actions."""

    scenario_id: str = Field(default_factory=_new_scenario_id)
    name: str
    description: str | None = None
    session_id: str | None = None
    steps: list[Action] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict)
    metadata: ScenarioMetadata = Field(default_factory=ScenarioMetadata)

    @field_validator("steps", mode="before")
    @classmethod
    def canonical_action_names(cls, value: Any) -> Any:
        return _canonical_steps(value)

    @model_validator(mode="after")
    def sync_step_count(self) -> "Scenario":
        self.metadata.total_steps = len(self.steps)
        return self

    def set_steps(self, steps: Iterable[BaseAction]) -> None:
        """Replace the steps, keeping the metadata in sync."""
        self.steps = list(steps)
        self.metadata.total_steps = len(self.steps)
        self.metadata.variables_used = find_variables(self.steps)

    def touch(self) -> None:
        """Update the last_modified timestamp."""
        self.metadata.last_modified = datetime.utcnow()

    def summary(self, recording: bool = False) -> "ScenarioSummary":
        return ScenarioSummary(
            scenario_id=self.scenario_id,
            name=self.name,
            description=self.description,
            total_steps=self.metadata.total_steps,
            duration=self.metadata.duration,
            created_at=self.metadata.created_at,
            last_modified=self.metadata.last_modified,
            last_used=self.metadata.last_used,
            variables_used=self.metadata.variables_used,
            recording=recording,
        )


class ScenarioSummary(BaseModel):
    """Listing entry for a scenario."""

    scenario_id: str
    name: str
    description: str | None = None
    total_steps: int
    duration: float
    created_at: datetime
    last_modified: datetime
    last_used: datetime | None = None
    variables_used: list[str] = Field(default_factory=list)
    recording: bool = False


class ScenarioPatch(BaseModel):
    """Partial update; ``None`` fields are left untouched, variables are merged."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    steps: list[Action] | None = None
    variables: dict[str, Any] | None = None

    @field_validator("steps", mode="before")
    @classmethod
    def canonical_action_names(cls, value: Any) -> Any:
        return _canonical_steps(value)


class ActiveRecording(BaseModel):
    """Step buffer of a session that is currently recording."""

    scenario_id: str
    scenario_name: str
    steps: list[Action] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    started_monotonic: float = Field(default_factory=time.monotonic)

    def elapsed(self) -> float:
        return time.monotonic() - self.started_monotonic


class RecordingOutcome(BaseModel):
    """Result of stopping a recording."""

    scenario: Scenario
    saved: bool
    save_error: str | None = None
