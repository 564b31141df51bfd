"""Stage 3: Tailoring Engine - drafts job-specific résumé content.

The draft always goes through the InvariantEnforcer before it is returned.
"""

from __future__ import annotations

import json
import logging

from ats_tailor.clients.llm_client import ProviderAdapter, ResponseSchema
from ats_tailor.models.analysis import ResumeAnalysis
from ats_tailor.models.job import JobAnalysis
from ats_tailor.models.resume import EARLIER_EXPERIENCE_LABEL, SCORE_CEILINGS, SourceProfile
from ats_tailor.pipeline.enforcer import EnforcementResult, InvariantEnforcer, PageBudget

logger = logging.getLogger(__name__)

TAILORED_CONTENT_SCHEMA = ResponseSchema(
    name="TailoredResumeContent",
    required_keys=(
        "contact",
        "summary",
        "experience",
        "skills",
        "keywords",
        "certifications",
        "professionalDevelopment",
        "education",
        "improvements",
        "atsScore",
        "coreScore",
        "scoreBreakdown",
        "coverageReport",
        "appliedMicroEdits",
        "suggestedMicroEdits",
    ),
)

RUBRIC_LABELS = {
    "coreTech": "Core Tech & Platforms - versions/stacks, OS, HA/DR",
    "responsibilities": "Responsibilities - operational work matching the posting",
    "tools": "Tools/Automation - scripting, source control, schedulers, observability",
    "adjacentDataStores": "Adjacent Data Stores - other databases and data systems",
    "compliance": "Compliance/Industry - audits, security, regulation",
    "logistics": "Logistics & Culture - travel, remote/onsite, communication",
}

SYSTEM_PROMPT = """\
You are an expert résumé writer producing ATS-optimized content. You rewrite
and reorder achievement bullets; you never invent employers, titles, dates,
certifications or experience the candidate does not have.

Respond with JSON only, in this shape:
{
  "contact": {"name": "", "title": "", "phone": "", "email": "", "city": "", "state": "", "linkedin": ""},
  "summary": "professional summary",
  "experience": [
    {"title": "", "company": "", "duration": "", "achievements": ["bullet"]}
  ],
  "skills": ["8-10 grouped skill lines"],
  "keywords": ["operational terms from the posting"],
  "certifications": ["only certifications present in the résumé"],
  "professionalDevelopment": ["only training present in the résumé"],
  "education": ["education entries from the résumé"],
  "improvements": ["every tailoring change applied"],
  "atsScore": 0-100,
  "coreScore": 0-100,
  "scoreBreakdown": {
    "<category>": {"earned": 0, "possible": 0, "evidence": ["sentence from the résumé"]}
  },
  "coverageReport": {
    "matchedKeywords": [],
    "missingKeywords": [],
    "truthfulnessLevel": {"<keyword>": "hands-on | familiar | omitted"}
  },
  "appliedMicroEdits": ["edit actually made in experience or skills"],
  "suggestedMicroEdits": ["edit worth considering but NOT applied"]
}"""


class ResumeTailor:
    def __init__(
        self,
        provider: ProviderAdapter,
        enforcer: InvariantEnforcer | None = None,
        *,
        page_budget: PageBudget | None = None,
    ):
        self.provider = provider
        self.enforcer = enforcer or InvariantEnforcer()
        self.page_budget = page_budget or self.enforcer.page_budget

    async def tailor(
        self,
        resume_text: str,
        job: JobAnalysis,
        analysis: ResumeAnalysis,
        profile: SourceProfile,
    ) -> EnforcementResult:
        """Generate tailored content and run it through the enforcer."""
        prompt = self.build_prompt(resume_text, job, analysis, profile)
        draft = await self.provider.generate(SYSTEM_PROMPT, prompt, TAILORED_CONTENT_SCHEMA)
        result = self.enforcer.enforce(draft, source_roles=profile.roles, contact=profile.contact)
        logger.info(
            "Tailored draft for %r: %d corrections, %d warnings",
            job.title,
            len(result.report.corrections),
            len(result.report.warnings),
        )
        return result

    def build_prompt(
        self,
        resume_text: str,
        job: JobAnalysis,
        analysis: ResumeAnalysis,
        profile: SourceProfile,
    ) -> str:
        return f"""Tailor this candidate's résumé to the job below.

## Headline
Use exactly this professional title in contact.title: "{self.enforcer.fixed_headline}"

## Page budget
{self._format_budget()}

## Truthfulness ladder
- Hands-on experience: include in experience bullets, with metrics where the résumé supports them.
- Familiar / exposure only: include in skills with hedged wording ("Working knowledge of",
  "Exposure to", "Background in"); vary the phrasing.
- Not true for this candidate: omit entirely, mark it "omitted" in coverageReport.truthfulnessLevel
  and list it in coverageReport.missingKeywords.

## Scoring rubric (100 points, show evidence)
{self._format_rubric()}

## Roles to preserve (same order, titles, employers and dates verbatim)
{self._format_roles(profile)}

## Candidate contact details
{json.dumps(profile.contact.to_wire(), indent=2)}

## Summary rules
Do not include lines such as "Target:", "Target role:" or "Target company:".
Do not state location preferences.

## Job analysis
{self._format_job(job)}

## Match analysis
{self._format_analysis(analysis)}

## Original résumé
{resume_text}"""

    def _format_budget(self) -> str:
        b = self.page_budget
        return "\n".join([
            f"- The {b.recent_roles} most recent roles: up to {b.recent_bullets} bullets each.",
            f"- The next {b.older_roles} roles: 3-{b.older_bullets} bullets each.",
            f'- Anything older: collapse into one final entry titled "{EARLIER_EXPERIENCE_LABEL}".',
            "- Keep the whole résumé to two pages.",
        ])

    def _format_rubric(self) -> str:
        return "\n".join(
            f"- {key} ({ceiling} pts): {RUBRIC_LABELS[key]}" for key, ceiling in SCORE_CEILINGS.items()
        )

    def _format_roles(self, profile: SourceProfile) -> str:
        if not profile.roles:
            return "(take them from the original résumé, unchanged)"
        return "\n".join(
            f"{i}. {r.title} | {r.company} | {r.duration}" for i, r in enumerate(profile.roles, 1)
        )

    def _format_job(self, job: JobAnalysis) -> str:
        buckets = job.keyword_buckets.to_wire()
        parts = [
            f"Title: {job.title or '(unknown)'}",
            f"Company: {job.company or '(unknown)'}",
            f"Role archetype: {job.role_archetype or '(unknown)'}",
            f"Keywords: {', '.join(job.keywords)}",
            "Requirements:",
            *[f"  - {r}" for r in job.requirements],
            "Keyword buckets:",
            *[f"  - {key}: {', '.join(values) or '(none)'}" for key, values in buckets.items()],
        ]
        return "\n".join(parts)

    def _format_analysis(self, analysis: ResumeAnalysis) -> str:
        return "\n".join([
            f"Matched keywords: {', '.join(analysis.matched_keywords) or '(none)'}",
            f"Missing keywords: {', '.join(analysis.missing_keywords) or '(none)'}",
            f"Strengths: {'; '.join(analysis.strengths) or '(none)'}",
            f"Gaps: {'; '.join(analysis.gaps) or '(none)'}",
            f"Suggestions: {'; '.join(analysis.suggestions) or '(none)'}",
        ])
