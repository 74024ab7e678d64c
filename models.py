"""
Data model for the privacy brief builder.

Enum-like fields are closed `Literal` unions; pydantic rejects any value that
is not declared. Field names are snake_case in Python and camelCase on the
wire, which is the shape the extraction call is asked to return.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ProjectType = Literal["coursework", "research", "proprietary", "personal"]
RepoVisibility = Literal["private", "public", "air-gapped"]
Sensitivity = Literal["low", "medium", "high"]
AiUsage = Literal["sparingly", "paired", "autonomous"]
Collaboration = Literal["solo", "small-team", "cross-org"]
NudgeLevel = Literal["light", "balanced", "intense"]
RiskArea = Literal["source code", "datasets", "credentials", "documentation"]
RiskLevel = Literal["low", "guarded", "elevated", "critical"]
ComplianceLabel = Literal["FERPA", "HIPAA", "Corporate NDA", "Internal policy", "None"]
StorageOption = Literal["local-encrypted", "local-plain", "cloud-synced", "shared-drive"]
ReminderOption = Literal[
    "session-audits", "data-minimization", "delete-after-export", "manual-redaction"
]

UNTITLED_PROJECT = "Untitled Project"


def _unique(values):
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return tuple(seen)


class Questionnaire(BaseModel):
    """Answers describing a project's privacy context."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    project_name: str = ""
    project_type: ProjectType = "coursework"
    repo_visibility: RepoVisibility = "private"
    data_sensitivity: Sensitivity = "medium"
    data_examples: str = ""
    compliance: tuple[ComplianceLabel, ...] = ()
    ai_usage: AiUsage = "paired"
    collaboration: Collaboration = "small-team"
    nudge_level: NudgeLevel = "balanced"
    highest_risk_area: RiskArea = "source code"
    storage: tuple[StorageOption, ...] = ()
    reminders: tuple[ReminderOption, ...] = ()

    @field_validator("compliance", "storage", "reminders", mode="before")
    @classmethod
    def _dedupe(cls, v):
        if isinstance(v, str):
            v = [v]
        return _unique(v or ())

    @property
    def display_name(self) -> str:
        return self.project_name.strip() or UNTITLED_PROJECT

    def to_json(self) -> dict:
        """camelCase JSON form, as stored in the browser and shown to users."""
        return self.model_dump(mode="json", by_alias=True)


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=1, le=8)
    level: RiskLevel


class Recommendations(BaseModel):
    model_config = ConfigDict(frozen=True)

    focus_areas: tuple[str, ...] = ()
    guardrails: tuple[str, ...] = ()
    watchwords: tuple[str, ...] = ()
    reminder_bullets: tuple[str, ...] = ()


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
