"""Typed errors raised by the tailoring pipeline and session orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ats_tailor.models.session import ResumeSession


class TailorError(Exception):
    """Base class for pipeline errors.

    ``session`` carries the last-known-good session snapshot when the error
    was raised by the orchestrator, so callers never lose prior state.
    """

    kind: str = "TailorError"

    def __init__(self, message: str = "", *, session: ResumeSession | None = None):
        super().__init__(message)
        self.session = session

    @property
    def retryable(self) -> bool:
        return False


class InvalidInput(TailorError, ValueError):
    """Caller error: malformed or missing required fields."""

    kind = "InvalidInput"


class SessionNotFound(InvalidInput):
    kind = "SessionNotFound"


class PreconditionFailed(TailorError):
    """A stage was invoked before its dependencies were satisfied."""

    kind = "PreconditionFailed"


class SessionBusy(TailorError):
    """Another stage invocation is already in flight for this session."""

    kind = "SessionBusy"


class ProviderError(TailorError):
    """Failure talking to (or understanding) an LLM provider."""

    kind = "ProviderError"


class ProviderUnavailable(ProviderError):
    """Network, auth or timeout failure. Never retried by the adapter."""

    kind = "ProviderUnavailable"

    @property
    def retryable(self) -> bool:
        return True


class RateLimited(ProviderError):
    kind = "RateLimited"

    def __init__(
        self,
        message: str = "",
        *,
        retry_after: float | None = None,
        session: ResumeSession | None = None,
    ):
        super().__init__(message, session=session)
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return True


class MalformedResponse(ProviderError):
    """Provider output could not be parsed or failed schema validation."""

    kind = "MalformedResponse"

    @property
    def retryable(self) -> bool:
        return True


class ConsistencyViolation(TailorError):
    """Generated content drifted from the source résumé.

    Recorded as a warning alongside the result; the enforcer never raises it.
    """

    kind = "ConsistencyViolation"

    def __init__(self, message: str, *, index: int, field: str, expected: str, actual: str):
        super().__init__(message)
        self.index = index
        self.field = field
        self.expected = expected
        self.actual = actual
