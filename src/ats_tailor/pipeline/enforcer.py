"""Invariant Enforcer: deterministic corrections applied to every tailored draft.

Each rule is a function ``(draft, ctx) -> draft`` over the raw provider JSON
(camelCase keys). Rules never mutate their input; findings go to
``ctx.report``. The default rule order matters: arrays are coerced before
anything indexes into them.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from pydantic import ValidationError

from ats_tailor.config import DEFAULT_BANNED_PREFIXES, DEFAULT_HEADLINE
from ats_tailor.errors import ConsistencyViolation, MalformedResponse
from ats_tailor.models.base import dedupe
from ats_tailor.models.resume import (
    SCORE_CEILINGS,
    TRUTHFULNESS_LEVELS,
    ContactInformation,
    ExperienceEntry,
    SourceRole,
    TailoredResumeContent,
)
from ats_tailor.pipeline.normalize import as_int, as_str, string_list

logger = logging.getLogger(__name__)

ARRAY_FIELDS: tuple[str, ...] = (
    "skills",
    "keywords",
    "certifications",
    "professionalDevelopment",
    "education",
    "improvements",
    "appliedMicroEdits",
    "suggestedMicroEdits",
)
FALLBACK_CORE_SCORE = 85
ROLE_FIELDS: tuple[str, ...] = ("title", "company", "duration")


@dataclass(frozen=True)
class PageBudget:
    """Bullet ceilings by role recency. Roles past the second tier collapse."""

    recent_roles: int = 2
    recent_bullets: int = 7
    older_roles: int = 2
    older_bullets: int = 4

    def ceiling(self, index: int) -> int | None:
        if index < self.recent_roles:
            return self.recent_bullets
        if index < self.recent_roles + self.older_roles:
            return self.older_bullets
        return None


@dataclass
class EnforcementReport:
    corrections: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    violations: list[ConsistencyViolation] = field(default_factory=list)

    def correct(self, message: str) -> None:
        logger.info("Enforcer correction: %s", message)
        self.corrections.append(message)

    def warn(self, message: str) -> None:
        logger.warning("Enforcer warning: %s", message)
        self.warnings.append(message)


@dataclass
class EnforcementContext:
    fixed_headline: str = DEFAULT_HEADLINE
    banned_prefixes: tuple[str, ...] = DEFAULT_BANNED_PREFIXES
    source_roles: list[SourceRole] = field(default_factory=list)
    contact: ContactInformation | None = None
    skills_range: tuple[int, int] = (8, 10)
    page_budget: PageBudget = field(default_factory=PageBudget)
    report: EnforcementReport = field(default_factory=EnforcementReport)


Rule = Callable[[dict, EnforcementContext], dict]


def _squash(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip().casefold()


def coerce_array_fields(draft: dict, ctx: EnforcementContext) -> dict:
    """Every array field becomes a list of strings; experience a list of role dicts."""
    draft = copy.deepcopy(draft)
    for name in ARRAY_FIELDS:
        value = draft.get(name)
        if not isinstance(value, list):
            if value is not None:
                ctx.report.correct(f"{name} was {type(value).__name__}, replaced with []")
            draft[name] = []
        else:
            draft[name] = string_list(value)

    raw = draft.get("experience")
    if not isinstance(raw, list):
        if raw is not None:
            ctx.report.correct(f"experience was {type(raw).__name__}, replaced with []")
        raw = []
    experience = []
    for entry in raw:
        if not isinstance(entry, dict):
            ctx.report.correct("dropped non-object experience entry")
            continue
        experience.append({
            "title": as_str(entry.get("title")),
            "company": as_str(entry.get("company")),
            "duration": as_str(entry.get("duration")),
            "achievements": string_list(entry.get("achievements")),
        })
    draft["experience"] = experience
    return draft


def merge_contact(draft: dict, ctx: EnforcementContext) -> dict:
    """Contact details extracted from the source résumé win over model output."""
    draft = copy.deepcopy(draft)
    raw = draft.get("contact")
    if not isinstance(raw, dict):
        raw = {}
    contact = {name: as_str(raw.get(name)) for name in ContactInformation.model_fields}
    if ctx.contact is not None:
        for name, source_value in ctx.contact.model_dump().items():
            if name == "title" or not source_value:
                continue
            if contact[name] != source_value:
                if contact[name]:
                    ctx.report.correct(f"contact.{name} restored from source résumé")
                contact[name] = source_value
    draft["contact"] = contact
    return draft


def force_headline(draft: dict, ctx: EnforcementContext) -> dict:
    """``contact.title`` is always the fixed headline."""
    draft = copy.deepcopy(draft)
    contact = draft.get("contact")
    if not isinstance(contact, dict):
        contact = {}
    current = contact.get("title")
    if current != ctx.fixed_headline:
        ctx.report.correct(f"contact.title {current!r} replaced with fixed headline")
        contact["title"] = ctx.fixed_headline
    draft["contact"] = contact
    return draft


def strip_banned_summary_lines(draft: dict, ctx: EnforcementContext) -> dict:
    """Remove summary lines that open with a banned prefix such as ``Target role:``."""
    draft = copy.deepcopy(draft)
    summary = draft.get("summary")
    summary = summary if isinstance(summary, str) else ""
    kept = []
    for line in summary.splitlines():
        lowered = line.strip().lower()
        if any(lowered.startswith(prefix) for prefix in ctx.banned_prefixes):
            ctx.report.correct(f"removed summary line {line.strip()!r}")
            continue
        kept.append(line)
    draft["summary"] = "\n".join(kept).strip()
    return draft


def default_scores(draft: dict, ctx: EnforcementContext) -> dict:
    """``coreScore`` falls back to ``atsScore``, then to 85."""
    draft = copy.deepcopy(draft)
    ats = as_int(draft.get("atsScore"), None)
    core = as_int(draft.get("coreScore"), None)
    if core is None:
        core = ats if ats is not None else FALLBACK_CORE_SCORE
        ctx.report.correct(f"coreScore defaulted to {core}")
    draft["atsScore"] = ats
    draft["coreScore"] = core
    return draft


def normalize_score_breakdown(draft: dict, ctx: EnforcementContext) -> dict:
    """Six categories, fixed ceilings, ``0 <= earned <= possible``."""
    draft = copy.deepcopy(draft)
    raw = draft.get("scoreBreakdown")
    if not isinstance(raw, dict):
        ctx.report.correct("scoreBreakdown missing, using empty rubric")
        raw = {}
    breakdown = {}
    for key, ceiling in SCORE_CEILINGS.items():
        category = raw.get(key)
        if not isinstance(category, dict):
            if raw:
                ctx.report.correct(f"scoreBreakdown.{key} missing, earned set to 0")
            category = {}
        if "possible" in category and as_int(category.get("possible"), None, 0, 1000) != ceiling:
            ctx.report.correct(f"scoreBreakdown.{key}.possible {category.get('possible')!r} reset to {ceiling}")
        earned = as_int(category.get("earned"), 0, 0, 1000)
        if earned > ceiling:
            ctx.report.correct(f"scoreBreakdown.{key}.earned {earned} capped at {ceiling}")
            earned = ceiling
        breakdown[key] = {
            "earned": earned,
            "possible": ceiling,
            "evidence": string_list(category.get("evidence")),
        }
    draft["scoreBreakdown"] = breakdown
    return draft


def normalize_coverage_report(draft: dict, ctx: EnforcementContext) -> dict:
    """Apply the truthfulness ladder: omitted keywords are reported as missing."""
    draft = copy.deepcopy(draft)
    raw = draft.get("coverageReport")
    if not isinstance(raw, dict):
        raw = {}
    matched = dedupe(string_list(raw.get("matchedKeywords")))
    missing = dedupe(string_list(raw.get("missingKeywords")))

    levels: dict[str, str] = {}
    raw_levels = raw.get("truthfulnessLevel")
    for keyword, level in (raw_levels.items() if isinstance(raw_levels, dict) else []):
        normalized = as_str(level).lower().replace(" ", "-").replace("_", "-")
        if normalized not in TRUTHFULNESS_LEVELS:
            ctx.report.correct(f"truthfulness level {level!r} for {keyword!r} treated as omitted")
            normalized = "omitted"
        levels[str(keyword)] = normalized

    missing_keys = {k.lower() for k in missing}
    for keyword, level in levels.items():
        if level == "omitted" and keyword.lower() not in missing_keys:
            missing.append(keyword)
            missing_keys.add(keyword.lower())
    overlap = [k for k in matched if k.lower() in missing_keys]
    if overlap:
        ctx.report.correct(f"keywords listed as both matched and missing kept as missing: {overlap}")
        matched = [k for k in matched if k.lower() not in missing_keys]

    draft["coverageReport"] = {
        "matchedKeywords": matched,
        "missingKeywords": missing,
        "truthfulnessLevel": levels,
    }
    return draft


def pin_experience_roles(draft: dict, ctx: EnforcementContext) -> dict:
    """Title, employer and dates must match the source role at the same position.

    A mismatch is recorded as a ConsistencyViolation and the source values
    are restored, unless the entry is a verbatim copy of a different source
    role (the model reordered or dropped roles); then it is only flagged.
    The collapsed "Earlier Experience" entry is exempt.
    """
    draft = copy.deepcopy(draft)
    roles = ctx.source_roles
    if not roles:
        return draft
    source_keys = {(_squash(r.title), _squash(r.company)) for r in roles}

    for index, entry in enumerate(draft.get("experience", [])):
        if ExperienceEntry(title=entry["title"], company=entry["company"]).is_collapsed:
            continue
        if index >= len(roles):
            ctx.report.warn(
                f"experience[{index}] {entry['title']!r} at {entry['company']!r} has no source role"
            )
            continue
        source = roles[index]
        mismatched = [
            name for name in ROLE_FIELDS
            if getattr(source, name) and _squash(entry[name]) != _squash(getattr(source, name))
        ]
        if not mismatched:
            continue
        displaced = (_squash(entry["title"]), _squash(entry["company"])) in source_keys
        for name in mismatched:
            violation = ConsistencyViolation(
                f"experience[{index}].{name} {entry[name]!r} differs from source {getattr(source, name)!r}",
                index=index,
                field=name,
                expected=getattr(source, name),
                actual=entry[name],
            )
            ctx.report.violations.append(violation)
            ctx.report.warn(str(violation))
            if not displaced:
                entry[name] = getattr(source, name)
    return draft


def check_budgets(draft: dict, ctx: EnforcementContext) -> dict:
    """Soft limits: skills count and bullets per role. Warnings only."""
    low, high = ctx.skills_range
    count = len(draft.get("skills", []))
    if not low <= count <= high:
        ctx.report.warn(f"skills has {count} entries, expected {low}-{high}")
    for index, entry in enumerate(draft.get("experience", [])):
        ceiling = ctx.page_budget.ceiling(index)
        bullets = len(entry.get("achievements", []))
        if ceiling is not None and bullets > ceiling:
            ctx.report.warn(f"experience[{index}] has {bullets} bullets, budget is {ceiling}")
    return draft


DEFAULT_RULES: tuple[Rule, ...] = (
    coerce_array_fields,
    merge_contact,
    force_headline,
    strip_banned_summary_lines,
    default_scores,
    normalize_score_breakdown,
    normalize_coverage_report,
    pin_experience_roles,
    check_budgets,
)


@dataclass
class EnforcementResult:
    content: TailoredResumeContent
    report: EnforcementReport


class InvariantEnforcer:
    """Runs the rule chain and validates the result into TailoredResumeContent."""

    def __init__(
        self,
        *,
        fixed_headline: str = DEFAULT_HEADLINE,
        banned_prefixes: Sequence[str] = DEFAULT_BANNED_PREFIXES,
        skills_range: tuple[int, int] = (8, 10),
        page_budget: PageBudget | None = None,
        rules: Sequence[Rule] = DEFAULT_RULES,
    ):
        self.fixed_headline = fixed_headline
        self.banned_prefixes = tuple(p.lower() for p in banned_prefixes)
        self.skills_range = skills_range
        self.page_budget = page_budget or PageBudget()
        self.rules = tuple(rules)

    def enforce(
        self,
        draft: dict,
        *,
        source_roles: list[SourceRole] | None = None,
        contact: ContactInformation | None = None,
    ) -> EnforcementResult:
        ctx = EnforcementContext(
            fixed_headline=self.fixed_headline,
            banned_prefixes=self.banned_prefixes,
            source_roles=list(source_roles or []),
            contact=contact,
            skills_range=self.skills_range,
            page_budget=self.page_budget,
        )
        for rule in self.rules:
            draft = rule(draft, ctx)

        draft = {**draft, "warnings": list(ctx.report.warnings)}
        try:
            content = TailoredResumeContent.model_validate(draft)
        except ValidationError as exc:
            raise MalformedResponse(f"TailoredResumeContent failed validation: {exc}") from exc
        return EnforcementResult(content=content, report=ctx.report)
