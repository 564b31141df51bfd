"""Pydantic models for Match Analyzer output."""

from __future__ import annotations

from pydantic import Field, model_validator

from ats_tailor.models.base import CamelModel

SECTION_NAMES: tuple[str, ...] = ("header", "summary", "experience", "skills", "certifications")


class ResumeAnalysis(CamelModel):
    strengths: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    matched_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    section_scores: dict[str, int] = Field(default_factory=dict)
    match_score: int = Field(ge=0, le=100)

    @model_validator(mode="after")
    def _disjoint(self) -> ResumeAnalysis:
        overlap = {k.lower() for k in self.matched_keywords} & {
            k.lower() for k in self.missing_keywords
        }
        if overlap:
            raise ValueError(f"keywords both matched and missing: {sorted(overlap)}")
        return self
