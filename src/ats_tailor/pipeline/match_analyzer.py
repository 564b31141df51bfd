"""Stage 2: Match Analyzer - compares the résumé against a JobAnalysis.

The model drafts strengths, gaps and keyword matches. The keyword partition
and the match score are then recomputed locally so every provider yields the
same score for the same evidence.
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction

from pydantic import ValidationError

from ats_tailor.clients.llm_client import ProviderAdapter, ResponseSchema
from ats_tailor.errors import MalformedResponse
from ats_tailor.models.analysis import SECTION_NAMES, ResumeAnalysis
from ats_tailor.models.job import JobAnalysis
from ats_tailor.pipeline.normalize import as_int, string_list

logger = logging.getLogger(__name__)

DEFAULT_SECTION_SCORE = 80
KEYWORD_WEIGHT = Fraction(7, 10)
SECTION_WEIGHT = Fraction(3, 10)
SCORED_SECTIONS: tuple[str, ...] = ("summary", "experience", "skills")

RESUME_ANALYSIS_SCHEMA = ResponseSchema(
    name="ResumeAnalysis",
    required_keys=(
        "strengths",
        "gaps",
        "suggestions",
        "matchedKeywords",
        "missingKeywords",
        "sectionScores",
    ),
)

SYSTEM_PROMPT = """\
You are a technical recruiter comparing a candidate's résumé with a job's
requirements. Judge only from what the résumé states.

Respond with JSON only, in this shape:
{
  "strengths": ["résumé strength that matches the job"],
  "gaps": ["skill or experience the job wants that the résumé lacks"],
  "suggestions": ["specific change that would improve fit"],
  "matchedKeywords": ["job keywords evidenced in the résumé"],
  "missingKeywords": ["job keywords not evidenced in the résumé"],
  "sectionScores": {
    "header": 0-100, "summary": 0-100, "experience": 0-100,
    "skills": 0-100, "certifications": 0-100
  }
}

Use the job keywords exactly as given. Every job keyword belongs in exactly
one of matchedKeywords or missingKeywords."""


def partition_keywords(
    job_keywords: list[str],
    claimed_matches: list[str],
) -> tuple[list[str], list[str]]:
    """Split ``job_keywords`` into (matched, missing).

    A keyword is matched only if the model claimed it (case-insensitive);
    everything else is missing. Claims outside ``job_keywords`` are dropped.
    Both halves keep the job's spelling and order.
    """
    claimed = {k.strip().lower() for k in claimed_matches}
    matched: list[str] = []
    missing: list[str] = []
    for keyword in job_keywords:
        (matched if keyword.lower() in claimed else missing).append(keyword)
    return matched, missing


def compute_match_score(
    matched_keywords: list[str],
    job_keywords: list[str],
    section_scores: dict[str, int],
    default_section_score: int = DEFAULT_SECTION_SCORE,
) -> int:
    """Deterministic 0-100 match score.

    ``round(100 * (0.7 * keyword_ratio + 0.3 * section_average))`` where the
    section average covers summary, experience and skills, each defaulting
    to ``default_section_score``. Rounds half up.
    """
    keyword_ratio = min(Fraction(1), Fraction(len(matched_keywords), max(1, len(job_keywords))))
    scores = []
    for name in SCORED_SECTIONS:
        value = section_scores.get(name)
        if value is None:
            value = default_section_score
        scores.append(max(0, min(100, value)))
    section_average = Fraction(sum(scores), len(scores) * 100)
    # Exact arithmetic so .5 boundaries round the same way everywhere
    raw = 100 * (KEYWORD_WEIGHT * keyword_ratio + SECTION_WEIGHT * section_average)
    return max(0, min(100, math.floor(raw + Fraction(1, 2))))


class MatchAnalyzer:
    def __init__(self, provider: ProviderAdapter, *, default_section_score: int = DEFAULT_SECTION_SCORE):
        self.provider = provider
        self.default_section_score = default_section_score

    async def analyze(self, resume_text: str, job: JobAnalysis) -> ResumeAnalysis:
        """Compare a résumé with a job analysis."""
        prompt = f"""Compare this résumé with the job below.

## Job
- Title: {job.title or "(unknown)"}
- Company: {job.company or "(unknown)"}
- Role archetype: {job.role_archetype or "(unknown)"}
- Requirements: {"; ".join(job.requirements)}
- Keywords: {", ".join(job.keywords)}

## Résumé
{resume_text}"""

        data = await self.provider.generate(SYSTEM_PROMPT, prompt, RESUME_ANALYSIS_SCHEMA)
        return self.normalize(data, job)

    def normalize(self, data: dict, job: JobAnalysis) -> ResumeAnalysis:
        """Force the keyword partition and replace the model's score."""
        matched, missing = partition_keywords(job.keywords, string_list(data.get("matchedKeywords")))

        model_missing = {k.lower() for k in string_list(data.get("missingKeywords"))}
        unplaced = [k for k in missing if k.lower() not in model_missing]
        if unplaced:
            logger.info("Keywords the model left unplaced, marked missing: %s", unplaced)

        raw_sections = data.get("sectionScores")
        if not isinstance(raw_sections, dict):
            raw_sections = {}
        section_scores = {
            name: as_int(raw_sections.get(name), self.default_section_score)
            for name in SECTION_NAMES
        }

        score = compute_match_score(matched, job.keywords, section_scores, self.default_section_score)
        if "matchScore" in data and as_int(data.get("matchScore"), None) != score:
            logger.debug("Discarding model matchScore %r, computed %d", data.get("matchScore"), score)

        try:
            return ResumeAnalysis.model_validate({
                "strengths": string_list(data.get("strengths")),
                "gaps": string_list(data.get("gaps")),
                "suggestions": string_list(data.get("suggestions")),
                "matchedKeywords": matched,
                "missingKeywords": missing,
                "sectionScores": section_scores,
                "matchScore": score,
            })
        except ValidationError as exc:
            raise MalformedResponse(f"ResumeAnalysis failed validation: {exc}") from exc
