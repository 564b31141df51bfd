"""Pydantic models for résumé content: source material and tailored output."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator

from ats_tailor.models.base import CamelModel

TruthfulnessLevel = Literal["hands-on", "familiar", "omitted"]
TRUTHFULNESS_LEVELS: tuple[str, ...] = ("hands-on", "familiar", "omitted")

# Rubric ceilings, keyed by wire name. Sums to 100.
SCORE_CEILINGS: dict[str, int] = {
    "coreTech": 35,
    "responsibilities": 25,
    "tools": 15,
    "adjacentDataStores": 10,
    "compliance": 10,
    "logistics": 5,
}

EARLIER_EXPERIENCE_LABEL = "Earlier Experience"


class ContactInformation(CamelModel):
    name: str = ""
    title: str = ""
    phone: str = ""
    email: str = ""
    city: str = ""
    state: str = ""
    linkedin: str = ""


class SourceRole(CamelModel):
    """A role as written in the candidate's own résumé."""

    title: str
    company: str
    duration: str = ""


class SourceProfile(CamelModel):
    contact: ContactInformation = Field(default_factory=ContactInformation)
    roles: list[SourceRole] = Field(default_factory=list)


class BaseResumeContent(CamelModel):
    text: str
    file_name: str | None = None
    file_type: str = "text/plain"
    char_count: int = 0


class ExperienceEntry(CamelModel):
    title: str
    company: str
    duration: str = ""
    achievements: list[str] = Field(default_factory=list)

    @property
    def is_collapsed(self) -> bool:
        label = EARLIER_EXPERIENCE_LABEL.casefold()
        return any(" ".join(value.split()).casefold() == label for value in (self.title, self.company))


class ScoreCategory(CamelModel):
    earned: int = Field(default=0, ge=0)
    possible: int
    evidence: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _earned_within_possible(self) -> ScoreCategory:
        if self.earned > self.possible:
            raise ValueError(f"earned {self.earned} exceeds possible {self.possible}")
        return self


def _category(key: str):
    return Field(default_factory=lambda: ScoreCategory(possible=SCORE_CEILINGS[key]))


class ScoreBreakdown(CamelModel):
    core_tech: ScoreCategory = _category("coreTech")
    responsibilities: ScoreCategory = _category("responsibilities")
    tools: ScoreCategory = _category("tools")
    adjacent_data_stores: ScoreCategory = _category("adjacentDataStores")
    compliance: ScoreCategory = _category("compliance")
    logistics: ScoreCategory = _category("logistics")

    @model_validator(mode="after")
    def _fixed_ceilings(self) -> ScoreBreakdown:
        for key, category in self.categories().items():
            if category.possible != SCORE_CEILINGS[key]:
                raise ValueError(
                    f"{key}.possible must be {SCORE_CEILINGS[key]}, got {category.possible}"
                )
        return self

    def categories(self) -> dict[str, ScoreCategory]:
        return {
            "coreTech": self.core_tech,
            "responsibilities": self.responsibilities,
            "tools": self.tools,
            "adjacentDataStores": self.adjacent_data_stores,
            "compliance": self.compliance,
            "logistics": self.logistics,
        }

    @property
    def total(self) -> int:
        return sum(c.earned for c in self.categories().values())


class CoverageReport(CamelModel):
    matched_keywords: list[str] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    truthfulness_level: dict[str, TruthfulnessLevel] = Field(default_factory=dict)


class TailoredResumeContent(CamelModel):
    contact: ContactInformation = Field(default_factory=ContactInformation)
    summary: str = ""
    experience: list[ExperienceEntry] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    professional_development: list[str] = Field(default_factory=list)
    education: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    ats_score: int | None = None
    core_score: int = 85
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    coverage_report: CoverageReport = Field(default_factory=CoverageReport)
    applied_micro_edits: list[str] = Field(default_factory=list)
    suggested_micro_edits: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
