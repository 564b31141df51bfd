"""Usage logging data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class StageLog(BaseModel):
    """One pipeline stage invocation for a session."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    stage: str  # "analyze_job" | "tailor"
    timestamp: datetime = Field(default_factory=datetime.now)
    provider: str | None = None
    job_title: str | None = None
    match_score: int | None = None
    elapsed_seconds: float = 0.0
    llm_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    estimated_cost_usd: float = 0.0
    success: bool = True
    error_kind: str | None = None
    warnings: int = 0
