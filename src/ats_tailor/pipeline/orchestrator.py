"""Session orchestrator - sequences the pipeline stages for one résumé session."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import weakref
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ats_tailor.cache.ttl_cache import TTLCache
from ats_tailor.clients.llm_client import ProviderAdapter, track_usage
from ats_tailor.clients.scraper import DocumentRenderer, JobScraper
from ats_tailor.config import AppConfig
from ats_tailor.errors import (
    InvalidInput,
    PreconditionFailed,
    RateLimited,
    SessionBusy,
    SessionNotFound,
    TailorError,
)
from ats_tailor.logging.cost_calculator import calculate_cost
from ats_tailor.logging.models import StageLog
from ats_tailor.logging.usage_store import UsageStore
from ats_tailor.models.job import ScrapedJob
from ats_tailor.models.resume import BaseResumeContent, SourceProfile, TailoredResumeContent
from ats_tailor.models.session import (
    InFlightStage,
    JobInput,
    ResumeSession,
    SessionStatus,
    Stage,
    StageFailure,
    utcnow,
)
from ats_tailor.pipeline.enforcer import InvariantEnforcer
from ats_tailor.pipeline.job_analyzer import JobAnalyzer
from ats_tailor.pipeline.match_analyzer import MatchAnalyzer
from ats_tailor.pipeline.profile_extractor import ProfileExtractor
from ats_tailor.pipeline.resume_tailor import ResumeTailor
from ats_tailor.store.session_store import SessionStore
from ats_tailor.utils.url_validator import validate_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Statuses a stage may start from, besides its own stale running status and
# an error left by the same stage.
_ENTRY_STATUSES: dict[Stage, frozenset[SessionStatus]] = {
    Stage.ANALYZE_JOB: frozenset({SessionStatus.DRAFT, SessionStatus.TAILORED}),
    Stage.TAILOR: frozenset({SessionStatus.DRAFT, SessionStatus.TAILORED}),
}


def _error_kind(exc: Exception) -> str:
    return exc.kind if isinstance(exc, TailorError) else type(exc).__name__


class wait_retry_after(wait_base):
    """Wait at least as long as a :class:`RateLimited` error's ``retry_after`` hint."""

    def __init__(self, fallback: Any, cap: float = 60.0):
        self.fallback = fallback
        self.cap = cap

    def __call__(self, retry_state) -> float:
        base = self.fallback(retry_state)
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        hint = getattr(exc, "retry_after", None)
        if hint is None:
            return base
        return max(base, min(float(hint), self.cap))


class SessionOrchestrator:
    """Drives ResumeSession records through analyze and tailor stages.

    One instance serves many sessions. Sessions share nothing but the store;
    each has its own lock and in-flight marker.
    """

    def __init__(
        self,
        store: SessionStore,
        provider: ProviderAdapter,
        *,
        config: AppConfig | None = None,
        scraper: JobScraper | None = None,
        usage_store: UsageStore | None = None,
        scrape_cache: TTLCache[ScrapedJob] | None = None,
        clock: Callable[[], datetime] = utcnow,
        retry_wait: Any = None,
        on_phase: Callable[[str, str], None] | None = None,
    ):
        self.config = config or AppConfig()
        pipeline = self.config.pipeline
        self.store = store
        self.provider = provider
        self.scraper = scraper
        self.usage_store = usage_store
        self.scrape_cache = scrape_cache or TTLCache(self.config.cache.scrape_ttl_seconds)
        self.clock = clock
        self.retry_wait = wait_retry_after(
            retry_wait or wait_exponential(multiplier=1, min=1, max=30)
        )
        self.on_phase = on_phase

        self.job_analyzer = JobAnalyzer(
            provider, sufficient_length_chars=pipeline.sufficient_length_chars
        )
        self.match_analyzer = MatchAnalyzer(
            provider, default_section_score=pipeline.default_section_score
        )
        self.profile_extractor = ProfileExtractor(provider)
        self.enforcer = InvariantEnforcer(
            fixed_headline=pipeline.fixed_headline,
            banned_prefixes=pipeline.banned_summary_prefixes,
            skills_range=(pipeline.skills_min, pipeline.skills_max),
        )
        self.resume_tailor = ResumeTailor(provider, self.enforcer)

        # Entries vanish once no coroutine holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._tasks: set[asyncio.Task] = set()

    # --- session CRUD ---

    async def create_session(self, user_id: str | None = None) -> ResumeSession:
        session = ResumeSession(user_id=user_id, created_at=self.clock(), updated_at=self.clock())
        self.store.put(session.id, session)
        logger.info("Created session %s", session.id)
        return session

    async def get_session(self, session_id: str) -> ResumeSession:
        return self._load(session_id)

    async def upload_resume(
        self,
        session_id: str,
        resume_text: str,
        *,
        file_name: str = "resume.txt",
        file_type: str = "text/plain",
    ) -> ResumeSession:
        """Attach the base résumé. Only allowed while the session is a draft."""
        if not resume_text or not resume_text.strip():
            raise InvalidInput("Résumé text is empty")

        async with self._lock_for(session_id):
            session = self._load(session_id)
            if session.status is not SessionStatus.DRAFT:
                raise PreconditionFailed(
                    f"Cannot upload a résumé while session is {session.status.value}",
                    session=session,
                )
            session.base_resume_content = BaseResumeContent(
                text=resume_text,
                file_name=file_name,
                file_type=file_type,
                char_count=len(resume_text),
            )
            session.source_profile = None
            self._save(session)
        logger.info("Session %s: résumé uploaded (%d chars)", session_id, len(resume_text))
        return session

    async def upload_profile(self, session_id: str, profile: SourceProfile) -> ResumeSession:
        """Supply contact details and source roles instead of extracting them."""
        async with self._lock_for(session_id):
            session = self._load(session_id)
            if session.status not in (SessionStatus.DRAFT, SessionStatus.TAILORED):
                raise PreconditionFailed(
                    f"Cannot set the source profile while session is {session.status.value}",
                    session=session,
                )
            session.source_profile = profile
            self._save(session)
        return session

    # --- stages ---

    async def analyze_job(
        self,
        session_id: str,
        *,
        url: str | None = None,
        text: str | None = None,
    ) -> ResumeSession:
        """Run the Job Analyzer on pasted text or a scraped posting URL."""
        try:
            job_input = JobInput(url=url, text=text)
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc
        if job_input.url:
            validate_url(job_input.url, resolve=False)
            if self.scraper is None:
                raise PreconditionFailed("No job scraper configured; paste the posting text instead")

        async def body(session: ResumeSession, marker: InFlightStage):
            if job_input.url:
                self._notify("scrape", job_input.url)
                scraped = await self.scrape_cache.aget(
                    job_input.url, lambda: self.scraper.scrape(job_input.url)
                )
                self._notify("analyze_job", scraped.title)
                return await self._with_retry(lambda: self.job_analyzer.analyze(
                    scraped.description,
                    title_hint=scraped.title,
                    company_hint=scraped.company,
                    requirements_hint=scraped.requirements,
                ))
            self._notify("analyze_job", "")
            return await self._with_retry(lambda: self.job_analyzer.analyze(job_input.text))

        def apply(session: ResumeSession, analysis) -> None:
            session.job_input = job_input
            session.job_analysis = analysis
            session.status = SessionStatus.DRAFT

        session = await self._run_stage(session_id, Stage.ANALYZE_JOB, body, apply)
        return session

    async def tailor(self, session_id: str) -> TailoredResumeContent:
        """Run Match Analyzer then Tailoring Engine; returns the enforced content."""

        def precondition(session: ResumeSession) -> None:
            missing = [
                name
                for name, value in (
                    ("baseResumeContent", session.base_resume_content),
                    ("jobAnalysis", session.job_analysis),
                )
                if value is None
            ]
            if missing:
                raise PreconditionFailed(
                    f"Session {session.id} is missing {', '.join(missing)}", session=session
                )

        async def body(session: ResumeSession, marker: InFlightStage):
            resume_text = session.base_resume_content.text
            profile = session.source_profile
            if profile is None:
                self._notify("extract_profile", "")
                profile = await self._with_retry(lambda: self.profile_extractor.extract(resume_text))
                await self._checkpoint(session.id, marker, source_profile=profile)

            self._notify("match", session.job_analysis.title)
            analysis = await self._with_retry(
                lambda: self.match_analyzer.analyze(resume_text, session.job_analysis)
            )
            self._notify("tailor", f"match score {analysis.match_score}")
            result = await self._with_retry(lambda: self.resume_tailor.tailor(
                resume_text, session.job_analysis, analysis, profile
            ))
            return profile, analysis, result

        def apply(session: ResumeSession, outcome) -> None:
            profile, analysis, result = outcome
            session.source_profile = profile
            session.resume_analysis = analysis
            session.match_score = analysis.match_score
            session.tailored_content = result.content
            session.status = SessionStatus.TAILORED

        session = await self._run_stage(session_id, Stage.TAILOR, body, apply, precondition)
        return session.tailored_content

    async def complete_session(
        self,
        session_id: str,
        renderer: DocumentRenderer | None = None,
    ) -> Any:
        """Move a tailored session to completed, rendering documents if asked.

        A renderer failure propagates and leaves the session tailored.
        """
        async with self._lock_for(session_id):
            session = self._load(session_id)
            if session.status is not SessionStatus.TAILORED or session.tailored_content is None:
                raise PreconditionFailed(
                    f"Only tailored sessions can be completed (status {session.status.value})",
                    session=session,
                )
            rendered = None
            if renderer is not None:
                rendered = renderer(session.tailored_content)
                if inspect.isawaitable(rendered):
                    rendered = await rendered
            session.status = SessionStatus.COMPLETED
            self._save(session)
        logger.info("Session %s completed", session_id)
        return rendered

    # --- stage machinery ---

    async def _run_stage(
        self,
        session_id: str,
        stage: Stage,
        body: Callable[[ResumeSession, InFlightStage], Awaitable[T]],
        apply: Callable[[ResumeSession, T], None],
        precondition: Callable[[ResumeSession], None] | None = None,
    ) -> ResumeSession:
        session, marker = await self._begin(session_id, stage, precondition)
        task = asyncio.ensure_future(self._execute(session, marker, body, apply))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        # Caller cancellation must not abandon a stage halfway; it finishes and persists.
        return await asyncio.shield(task)

    async def _begin(
        self,
        session_id: str,
        stage: Stage,
        precondition: Callable[[ResumeSession], None] | None,
    ) -> tuple[ResumeSession, InFlightStage]:
        async with self._lock_for(session_id):
            session = self._load(session_id)
            stale = False
            if session.in_flight is not None:
                if not self._is_stale(session.in_flight):
                    raise SessionBusy(
                        f"Session {session_id} is busy with {session.in_flight.stage.value}",
                        session=session,
                    )
                stale = True
            if not self._can_enter(session, stage, stale):
                raise PreconditionFailed(
                    f"Cannot run {stage.value} while session is {session.status.value}",
                    session=session,
                )
            if precondition is not None:
                precondition(session)

            if stale:
                logger.warning(
                    "Session %s: taking over stale %s started at %s",
                    session_id,
                    session.in_flight.stage.value,
                    session.in_flight.started_at.isoformat(),
                )
            marker = InFlightStage(stage=stage, started_at=self.clock())
            prior = session.model_copy(deep=True)
            session.in_flight = marker
            session.status = stage.running_status
            self._save(session)
        logger.info("Session %s: %s started", session_id, stage.value)
        return prior, marker

    async def _execute(
        self,
        session: ResumeSession,
        marker: InFlightStage,
        body: Callable[[ResumeSession, InFlightStage], Awaitable[T]],
        apply: Callable[[ResumeSession, T], None],
    ) -> ResumeSession:
        start = time.monotonic()
        with track_usage() as calls:
            try:
                result = await body(session, marker)
            except (InvalidInput, PreconditionFailed) as exc:
                stored = await self._release(session, marker)
                self._record_usage(session, marker.stage, calls, start, error=exc)
                exc.session = stored
                raise
            except Exception as exc:
                stored = await self._fail(session, marker, exc)
                self._record_usage(session, marker.stage, calls, start, error=exc)
                if isinstance(exc, TailorError):
                    exc.session = stored
                raise

        stored = await self._finish(session.id, marker, result, apply)
        self._record_usage(stored, marker.stage, calls, start)
        logger.info(
            "Session %s: %s done in %.1fs",
            session.id,
            marker.stage.value,
            time.monotonic() - start,
        )
        return stored

    async def _finish(self, session_id: str, marker: InFlightStage, result, apply) -> ResumeSession:
        async with self._lock_for(session_id):
            session = self._owned(session_id, marker)
            apply(session, result)
            session.in_flight = None
            session.last_error = None
            self._save(session)
        return session

    async def _fail(self, prior: ResumeSession, marker: InFlightStage, exc: Exception) -> ResumeSession:
        kind = _error_kind(exc)
        logger.error(
            "Session %s: %s failed (%s)", prior.id, marker.stage.value, kind, exc_info=exc
        )
        async with self._lock_for(prior.id):
            session = self._owned(prior.id, marker)
            session.in_flight = None
            session.status = SessionStatus.ERROR
            session.last_error = StageFailure(
                stage=marker.stage,
                kind=kind,
                message=str(exc),
                occurred_at=self.clock(),
            )
            self._save(session)
        return session

    async def _release(self, prior: ResumeSession, marker: InFlightStage) -> ResumeSession:
        """Undo a stage that failed on caller input: back to the prior status."""
        async with self._lock_for(prior.id):
            session = self._owned(prior.id, marker)
            session.in_flight = None
            session.status = prior.status
            self._save(session)
        return session

    async def _checkpoint(self, session_id: str, marker: InFlightStage, **fields) -> None:
        async with self._lock_for(session_id):
            session = self._owned(session_id, marker)
            for name, value in fields.items():
                setattr(session, name, value)
            self._save(session)

    def _owned(self, session_id: str, marker: InFlightStage) -> ResumeSession:
        session = self._load(session_id)
        if session.in_flight is None or session.in_flight.token != marker.token:
            logger.warning(
                "Session %s: discarding %s result, another invocation took over",
                session_id,
                marker.stage.value,
            )
            raise SessionBusy(
                f"Session {session_id}: {marker.stage.value} was superseded", session=session
            )
        return session

    async def _with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(RateLimited),
            stop=stop_after_attempt(self.config.llm.max_retries),
            wait=self.retry_wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await call()

    def _can_enter(self, session: ResumeSession, stage: Stage, stale: bool) -> bool:
        if session.status in _ENTRY_STATUSES[stage]:
            return True
        if session.status is stage.running_status:
            # A running status with no marker is a crashed stage.
            return stale or session.in_flight is None
        if session.status is SessionStatus.ERROR:
            return session.last_error is not None and session.last_error.stage is stage
        return False

    def _is_stale(self, marker: InFlightStage) -> bool:
        age = self.clock() - marker.started_at
        return age >= timedelta(seconds=self.config.pipeline.stale_after_seconds)

    def _record_usage(
        self,
        session: ResumeSession,
        stage: Stage,
        calls: list[tuple[str, int, int]],
        start: float,
        *,
        error: Exception | None = None,
    ) -> None:
        if self.usage_store is None:
            return
        warnings = 0
        if session.tailored_content is not None and stage is Stage.TAILOR and error is None:
            warnings = len(session.tailored_content.warnings)
        log = StageLog(
            session_id=session.id,
            stage=stage.value,
            provider=self.provider.name,
            job_title=session.job_analysis.title if session.job_analysis else None,
            match_score=session.match_score,
            elapsed_seconds=time.monotonic() - start,
            llm_calls=len(calls),
            total_input_tokens=sum(c[1] for c in calls),
            total_output_tokens=sum(c[2] for c in calls),
            estimated_cost_usd=calculate_cost(calls),
            success=error is None,
            error_kind=_error_kind(error) if error is not None else None,
            warnings=warnings,
        )
        try:
            self.usage_store.save_log(log)
        except Exception:
            logger.warning("Failed to save usage log for session %s", session.id, exc_info=True)

    # --- helpers ---

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            self._load(session_id)
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _load(self, session_id: str) -> ResumeSession:
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session not found: {session_id}")
        return session

    def _save(self, session: ResumeSession) -> None:
        session.updated_at = self.clock()
        self.store.put(session.id, session)

    def _notify(self, phase: str, detail: str = "") -> None:
        if self.on_phase:
            self.on_phase(phase, detail)
