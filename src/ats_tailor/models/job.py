"""Pydantic models for Job Analyzer output."""

from __future__ import annotations

from pydantic import Field, field_validator

from ats_tailor.models.base import CamelModel, dedupe

# Wire names of the six keyword buckets; also the score breakdown categories.
BUCKET_KEYS: tuple[str, ...] = (
    "coreTech",
    "responsibilities",
    "tools",
    "adjacentDataStores",
    "compliance",
    "logistics",
)


class KeywordBuckets(CamelModel):
    core_tech: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    adjacent_data_stores: list[str] = Field(default_factory=list)
    compliance: list[str] = Field(default_factory=list)
    logistics: list[str] = Field(default_factory=list)


class QualityGates(CamelModel):
    sufficient_length: bool = False
    role_specific: bool = True
    not_generic: bool = True


class JobAnalysis(CamelModel):
    title: str = ""
    company: str = ""
    keywords: list[str] = Field(default_factory=list)
    keyword_buckets: KeywordBuckets = Field(default_factory=KeywordBuckets)
    quality_gates: QualityGates = Field(default_factory=QualityGates)
    requirements: list[str] = Field(default_factory=list)
    role_archetype: str = ""
    synonym_map: dict[str, list[str]] = Field(default_factory=dict)
    char_count: int = 0
    word_count: int = 0

    @field_validator("keywords")
    @classmethod
    def _unique_keywords(cls, value: list[str]) -> list[str]:
        return dedupe(value)

    @property
    def low_confidence(self) -> bool:
        gates = self.quality_gates
        return not (gates.sufficient_length and gates.role_specific and gates.not_generic)


class ScrapedJob(CamelModel):
    """What an external scraper returns for a job-posting URL."""

    title: str = ""
    company: str = ""
    description: str
    requirements: list[str] = Field(default_factory=list)
