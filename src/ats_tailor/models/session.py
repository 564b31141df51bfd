"""Pydantic models for the persisted tailoring session."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import Field, model_validator

from ats_tailor.models.analysis import ResumeAnalysis
from ats_tailor.models.base import CamelModel
from ats_tailor.models.job import JobAnalysis
from ats_tailor.models.resume import BaseResumeContent, SourceProfile, TailoredResumeContent


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    DRAFT = "draft"
    ANALYZING = "analyzing"
    TAILORING = "tailoring"
    TAILORED = "tailored"
    COMPLETED = "completed"
    ERROR = "error"


class Stage(str, Enum):
    ANALYZE_JOB = "analyze_job"
    TAILOR = "tailor"

    @property
    def running_status(self) -> SessionStatus:
        if self is Stage.ANALYZE_JOB:
            return SessionStatus.ANALYZING
        return SessionStatus.TAILORING


class JobInput(CamelModel):
    url: str | None = None
    text: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> JobInput:
        has_url = bool(self.url and self.url.strip())
        has_text = bool(self.text and self.text.strip())
        if has_url == has_text:
            raise ValueError("exactly one of 'url' or 'text' is required")
        return self


class InFlightStage(CamelModel):
    stage: Stage
    token: str = Field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = Field(default_factory=utcnow)


class StageFailure(CamelModel):
    stage: Stage
    kind: str
    message: str = ""
    occurred_at: datetime = Field(default_factory=utcnow)


class ResumeSession(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str | None = None
    status: SessionStatus = SessionStatus.DRAFT
    base_resume_content: BaseResumeContent | None = None
    job_input: JobInput | None = None
    job_analysis: JobAnalysis | None = None
    resume_analysis: ResumeAnalysis | None = None
    source_profile: SourceProfile | None = None
    tailored_content: TailoredResumeContent | None = None
    match_score: int | None = Field(default=None, ge=0, le=100)
    in_flight: InFlightStage | None = None
    last_error: StageFailure | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
