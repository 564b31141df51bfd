"""Stage 1: Job Analyzer - turns job-posting text into a structured JobAnalysis."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ats_tailor.clients.llm_client import ProviderAdapter, ResponseSchema
from ats_tailor.errors import InvalidInput, MalformedResponse
from ats_tailor.models.base import dedupe
from ats_tailor.models.job import BUCKET_KEYS, JobAnalysis
from ats_tailor.pipeline.normalize import as_bool, as_str, string_list

logger = logging.getLogger(__name__)

SUFFICIENT_LENGTH_CHARS = 3000

# Terms detected locally and merged into the model's keyword list.
KEYWORD_CATALOG: tuple[str, ...] = (
    "SQL Server", "T-SQL", "SSIS", "SSRS", "SSAS",
    "Azure SQL", "SQL Database", "Performance Tuning", "Query Optimization",
    "Backup", "Recovery", "High Availability", "AlwaysOn",
    "Replication", "Mirroring", "Clustering", "PowerShell",
    "Database Administration", "DBA", "Index Optimization",
    "Security", "Monitoring", "Troubleshooting",
)

JOB_ANALYSIS_SCHEMA = ResponseSchema(
    name="JobAnalysis",
    required_keys=(
        "title",
        "company",
        "requirements",
        "keywords",
        "roleArchetype",
        "qualityGates",
        "keywordBuckets",
        "synonymMap",
    ),
)

SYSTEM_PROMPT = """\
You analyze job descriptions with a JD-first, evidence-based method. Extract
only what the posting actually says; never invent requirements.

Respond with JSON only, in this shape:
{
  "title": "job title",
  "company": "company name, or empty string if not stated",
  "requirements": ["key requirement", "..."],
  "keywords": ["20-30 ATS keywords, exact wording from the posting"],
  "roleArchetype": "e.g. SQL Server DBA, EHR Administrator, Data Engineer",
  "qualityGates": {
    "sufficientLength": true,
    "roleSpecific": "true if the posting lists substantial role duties",
    "notGeneric": "true if it is not a boilerplate posting"
  },
  "keywordBuckets": {
    "coreTech": ["database/platform technologies"],
    "responsibilities": ["operational duties"],
    "tools": ["automation/monitoring tools"],
    "adjacentDataStores": ["other data systems"],
    "compliance": ["security/regulatory terms"],
    "logistics": ["location/schedule/travel requirements"]
  },
  "synonymMap": {"term": ["synonym", "..."]}
}"""


def detect_catalog_keywords(text: str, catalog: tuple[str, ...] = KEYWORD_CATALOG) -> list[str]:
    """Catalog terms that appear in ``text``.

    Case-insensitive substring match that ignores hyphens, so "TSQL" finds
    "T-SQL" and "Always-On" finds "AlwaysOn".
    """
    folded = _fold(text)
    return dedupe([term for term in catalog if _fold(term) in folded])


def _fold(value: str) -> str:
    return value.lower().replace("-", "")


class JobAnalyzer:
    def __init__(
        self,
        provider: ProviderAdapter,
        *,
        sufficient_length_chars: int = SUFFICIENT_LENGTH_CHARS,
        keyword_catalog: tuple[str, ...] = KEYWORD_CATALOG,
    ):
        self.provider = provider
        self.sufficient_length_chars = sufficient_length_chars
        self.keyword_catalog = keyword_catalog

    async def analyze(
        self,
        jd_text: str,
        *,
        title_hint: str = "",
        company_hint: str = "",
        requirements_hint: list[str] | None = None,
    ) -> JobAnalysis:
        """Analyze a job description.

        Hints come from a scraped posting and fill in fields the model left
        empty.

        Raises:
            InvalidInput: ``jd_text`` is empty or whitespace.
            MalformedResponse: provider output does not fit the contract.
        """
        if not jd_text or not jd_text.strip():
            raise InvalidInput("Job description text is empty")

        char_count = len(jd_text)
        word_count = len(jd_text.split())

        prompt = f"""Analyze this job description ({char_count} characters, {word_count} words):

---
{jd_text}
---"""

        data = await self.provider.generate(SYSTEM_PROMPT, prompt, JOB_ANALYSIS_SCHEMA)
        analysis = self.normalize(
            data,
            jd_text,
            title_hint=title_hint,
            company_hint=company_hint,
            requirements_hint=requirements_hint or [],
        )
        if analysis.low_confidence:
            logger.warning(
                "Low-confidence job analysis for %r: %s",
                analysis.title,
                analysis.quality_gates.model_dump(),
            )
        return analysis

    def normalize(
        self,
        data: dict,
        jd_text: str,
        *,
        title_hint: str = "",
        company_hint: str = "",
        requirements_hint: list[str] | None = None,
    ) -> JobAnalysis:
        """Make raw provider output satisfy the JobAnalysis contract."""
        buckets = data.get("keywordBuckets")
        if not isinstance(buckets, dict):
            buckets = {}
        gates = data.get("qualityGates")
        if not isinstance(gates, dict):
            gates = {}
        synonyms = data.get("synonymMap")
        if not isinstance(synonyms, dict):
            synonyms = {}

        char_count = len(jd_text)
        model_sufficient = gates.get("sufficientLength")
        sufficient = char_count >= self.sufficient_length_chars
        if model_sufficient is not None and as_bool(model_sufficient, sufficient) != sufficient:
            logger.info(
                "Overriding model sufficientLength=%s with local value %s (%d chars)",
                model_sufficient,
                sufficient,
                char_count,
            )

        keywords = string_list(data.get("keywords")) + detect_catalog_keywords(
            jd_text, self.keyword_catalog
        )

        try:
            return JobAnalysis.model_validate({
                "title": as_str(data.get("title")) or title_hint,
                "company": as_str(data.get("company")) or company_hint,
                "keywords": keywords,
                "keywordBuckets": {key: string_list(buckets.get(key)) for key in BUCKET_KEYS},
                "qualityGates": {
                    "sufficientLength": sufficient,
                    "roleSpecific": as_bool(gates.get("roleSpecific"), True),
                    "notGeneric": as_bool(gates.get("notGeneric"), True),
                },
                "requirements": dedupe(
                    string_list(data.get("requirements")) + list(requirements_hint or [])
                ),
                "roleArchetype": as_str(data.get("roleArchetype")),
                "synonymMap": {
                    str(term): string_list(values) for term, values in synonyms.items()
                },
                "charCount": char_count,
                "wordCount": len(jd_text.split()),
            })
        except ValidationError as exc:
            raise MalformedResponse(f"JobAnalysis failed validation: {exc}") from exc
