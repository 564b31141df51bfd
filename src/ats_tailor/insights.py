"""Aggregate statistics over stored sessions, cached for a few minutes."""

from __future__ import annotations

import logging
from collections import Counter

from pydantic import BaseModel, Field

from ats_tailor.cache.ttl_cache import TTLCache
from ats_tailor.models.session import SessionStatus
from ats_tailor.store.session_store import SessionStore

logger = logging.getLogger(__name__)

INSIGHTS_KEY = "insights"


class KeywordCount(BaseModel):
    keyword: str
    count: int


class InsightsSummary(BaseModel):
    total_sessions: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)
    average_match_score: float | None = None
    top_missing_keywords: list[KeywordCount] = Field(default_factory=list)
    tailored_warnings: int = 0


class SessionInsights:
    """Computes an InsightsSummary from the store behind a caller-owned TTLCache."""

    def __init__(self, store: SessionStore, cache: TTLCache[InsightsSummary], *, top_n: int = 10):
        self.store = store
        self.cache = cache
        self.top_n = top_n

    def summary(self) -> InsightsSummary:
        return self.cache.get(INSIGHTS_KEY, self._compute)

    def invalidate(self) -> None:
        self.cache.invalidate(INSIGHTS_KEY)

    def _compute(self) -> InsightsSummary:
        statuses: Counter[str] = Counter({s.value: 0 for s in SessionStatus})
        scores: list[int] = []
        missing: Counter[str] = Counter()
        spelling: dict[str, str] = {}
        warnings = 0
        total = 0

        for session_id in self.store.list_ids():
            session = self.store.get(session_id)
            if session is None:
                continue
            total += 1
            statuses[session.status.value] += 1
            if session.match_score is not None:
                scores.append(session.match_score)
            if session.resume_analysis is not None:
                for keyword in session.resume_analysis.missing_keywords:
                    key = keyword.lower()
                    spelling.setdefault(key, keyword)
                    missing[key] += 1
            if session.tailored_content is not None:
                warnings += len(session.tailored_content.warnings)

        logger.debug("Computed insights over %d sessions", total)
        return InsightsSummary(
            total_sessions=total,
            status_counts=dict(statuses),
            average_match_score=round(sum(scores) / len(scores), 1) if scores else None,
            top_missing_keywords=[
                KeywordCount(keyword=spelling[key], count=count)
                for key, count in missing.most_common(self.top_n)
            ],
            tailored_warnings=warnings,
        )
