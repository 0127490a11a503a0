"""Domain records exchanged with the auth provider and record stores."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Identity issued by the auth provider; never mutated locally."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None


class Session(BaseModel):
    """Live token pair plus embedded identity."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    expires_at: datetime
    user: User


class ProfilePreferences(BaseModel):
    email_notifications: bool = True
    calendar_integration: bool = False
    weekly_reports: bool = True
    theme: Literal["light", "dark", "system"] | None = None
    timezone: str | None = None


class Profile(BaseModel):
    """Profile record as stored by the profile store."""

    id: str
    email: str | None = None
    full_name: str | None = None
    persona: str | None = None
    survey_answers: dict[str, Any] | None = None
    preferences: ProfilePreferences | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Plan(BaseModel):
    """Generated 90-day activity plan; immutable once generated."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    start_date: datetime
    phase1_activities: list[str] = Field(default_factory=list)
    phase2_activities: list[str] = Field(default_factory=list)
    phase3_activities: list[str] = Field(default_factory=list)
    generated_at: datetime | None = None
    is_active: bool = False

    @property
    def total_activities(self) -> int:
        return (
            len(self.phase1_activities)
            + len(self.phase2_activities)
            + len(self.phase3_activities)
        )


ProgressStatus = Literal["pending", "in_progress", "completed", "skipped"]


class ProgressRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    activity_id: str
    status: ProgressStatus


class PendingSurvey(BaseModel):
    """Survey answers captured before the account existed."""

    user_id: str
    answers: dict[str, Any]
    persona: str
    full_name: str | None = None
