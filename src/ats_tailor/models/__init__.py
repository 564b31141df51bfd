"""Data models for the ATS tailoring pipeline."""

from ats_tailor.models.analysis import SECTION_NAMES, ResumeAnalysis
from ats_tailor.models.job import BUCKET_KEYS, JobAnalysis, KeywordBuckets, QualityGates, ScrapedJob
from ats_tailor.models.resume import (
    SCORE_CEILINGS,
    BaseResumeContent,
    ContactInformation,
    CoverageReport,
    ExperienceEntry,
    ScoreBreakdown,
    ScoreCategory,
    SourceProfile,
    SourceRole,
    TailoredResumeContent,
)
from ats_tailor.models.session import (
    InFlightStage,
    JobInput,
    ResumeSession,
    SessionStatus,
    Stage,
    StageFailure,
)

__all__ = [
    "BUCKET_KEYS",
    "BaseResumeContent",
    "ContactInformation",
    "CoverageReport",
    "ExperienceEntry",
    "InFlightStage",
    "JobAnalysis",
    "JobInput",
    "KeywordBuckets",
    "QualityGates",
    "ResumeAnalysis",
    "ResumeSession",
    "SCORE_CEILINGS",
    "SECTION_NAMES",
    "ScoreBreakdown",
    "ScoreCategory",
    "ScrapedJob",
    "SessionStatus",
    "SourceProfile",
    "SourceRole",
    "Stage",
    "StageFailure",
    "TailoredResumeContent",
]
