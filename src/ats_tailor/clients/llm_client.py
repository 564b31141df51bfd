"""LLM provider adapters: one async JSON-generation contract, one class per backend.

Stages only ever see :class:`ProviderAdapter`. Swapping Anthropic for OpenAI
changes latency and cost, never stage behaviour.
"""

from __future__ import annotations

import contextvars
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import anthropic
import openai

from ats_tailor.config import LLMConfig
from ats_tailor.errors import MalformedResponse, ProviderUnavailable, RateLimited
from ats_tailor.utils.json_parser import extract_json_object

logger = logging.getLogger(__name__)

STRICT_JSON_REMINDER = """\

IMPORTANT: Your previous reply could not be parsed. Reply with ONE valid JSON
object only. No prose, no markdown fences, no comments, no trailing commas."""

# (model, input_tokens, output_tokens) entries for the current stage, if tracked.
_usage_ledger: contextvars.ContextVar[list[tuple[str, int, int]] | None] = contextvars.ContextVar(
    "ats_tailor_usage_ledger", default=None
)


@contextmanager
def track_usage() -> Iterator[list[tuple[str, int, int]]]:
    """Collect token usage of every provider call made in this context."""
    calls: list[tuple[str, int, int]] = []
    token = _usage_ledger.set(calls)
    try:
        yield calls
    finally:
        _usage_ledger.reset(token)


@dataclass
class LLMResponse:
    """Raw text response plus usage metadata."""

    text: str
    model: str
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class ResponseSchema:
    """Top-level keys a stage expects back. Not a validator."""

    name: str
    required_keys: tuple[str, ...]

    def describe(self) -> str:
        keys = ", ".join(f'"{k}"' for k in self.required_keys)
        return f"Respond with a single JSON object ({self.name}) with these top-level keys: {keys}."

    def missing_keys(self, data: dict) -> list[str]:
        return [k for k in self.required_keys if k not in data]


class ProviderAdapter(ABC):
    """Uniform interface to a text-generation backend.

    Subclasses set ``_provider_prefix`` and implement :meth:`_call_api`,
    translating SDK exceptions into :class:`RateLimited` or
    :class:`ProviderUnavailable`.
    """

    _provider_prefix: str

    def __init__(self, model: str, *, temperature: float = 0.2, max_tokens: int = 8192):
        self.model = model
        self.name = f"{self._provider_prefix}/{model}"
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._token_log: list[tuple[str, int, int]] = []

    @abstractmethod
    async def _call_api(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """Make a single API call (no retries)."""

    async def complete(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """Send one prompt and return the raw text response."""
        logger.debug("LLM call: %s", self.name)
        try:
            response = await self._call_api(system_prompt, user_prompt)
        except RateLimited:
            logger.warning("LLM call rate limited: %s", self.name)
            raise
        except ProviderUnavailable:
            logger.error("LLM call failed: %s", self.name, exc_info=True)
            raise
        logger.debug(
            "LLM response: %d input, %d output tokens",
            response.input_tokens,
            response.output_tokens,
        )
        entry = (response.model, response.input_tokens, response.output_tokens)
        self._token_log.append(entry)
        ledger = _usage_ledger.get()
        if ledger is not None:
            ledger.append(entry)
        return response

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: ResponseSchema,
    ) -> dict:
        """Return the parsed JSON object the model produced.

        A reply that does not parse is re-prompted once with stricter
        instructions; a second failure raises :class:`MalformedResponse`.
        Semantic checks are left to the calling stage.
        """
        prompt = f"{user_prompt}\n\n{response_schema.describe()}"
        response = await self.complete(system_prompt, prompt)
        try:
            data = extract_json_object(response.text)
        except ValueError:
            logger.warning("Unparsable %s from %s, re-prompting once", response_schema.name, self.name)
            response = await self.complete(system_prompt, prompt + STRICT_JSON_REMINDER)
            try:
                data = extract_json_object(response.text)
            except ValueError as exc:
                raise MalformedResponse(
                    f"{self.name} returned unparsable {response_schema.name}: {exc}"
                ) from exc

        missing = response_schema.missing_keys(data)
        if missing:
            logger.debug("%s missing keys from %s: %s", response_schema.name, self.name, missing)
        return data


def _retry_after(exc: Exception) -> float | None:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    try:
        return float(response.headers.get("retry-after"))
    except (TypeError, ValueError):
        return None


class AnthropicProvider(ProviderAdapter):
    """Anthropic Claude backend."""

    _provider_prefix = "anthropic"

    def __init__(
        self,
        model: str = "claude-sonnet-4-5-20250929",
        *,
        api_key: str | None = None,
        timeout: float | None = None,
        temperature: float = 0.2,
        max_tokens: int = 8192,
    ):
        super().__init__(model, temperature=temperature, max_tokens=max_tokens)
        # SDK retries off: the pipeline owns retry policy.
        kwargs: dict = {"max_retries": 0}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)

    async def _call_api(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.RateLimitError as exc:
            raise RateLimited(str(exc), retry_after=_retry_after(exc)) from exc
        except anthropic.APIStatusError as exc:
            if exc.status_code == 529:  # overloaded
                raise RateLimited(str(exc), retry_after=_retry_after(exc)) from exc
            raise ProviderUnavailable(f"{self.name}: HTTP {exc.status_code}") from exc
        except anthropic.APIError as exc:
            raise ProviderUnavailable(f"{self.name}: {exc}") from exc

        return LLMResponse(
            text="".join(getattr(block, "text", "") for block in message.content),
            model=self.model,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )


class OpenAIProvider(ProviderAdapter):
    """OpenAI chat-completions backend in JSON mode."""

    _provider_prefix = "openai"

    def __init__(
        self,
        model: str = "gpt-4o",
        *,
        api_key: str | None = None,
        timeout: float | None = None,
        temperature: float = 0.2,
        max_tokens: int = 8192,
    ):
        super().__init__(model, temperature=temperature, max_tokens=max_tokens)
        kwargs: dict = {"max_retries": 0}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = openai.AsyncOpenAI(**kwargs)

    async def _call_api(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except openai.RateLimitError as exc:
            raise RateLimited(str(exc), retry_after=_retry_after(exc)) from exc
        except openai.APIStatusError as exc:
            raise ProviderUnavailable(f"{self.name}: HTTP {exc.status_code}") from exc
        except openai.APIError as exc:
            raise ProviderUnavailable(f"{self.name}: {exc}") from exc

        return LLMResponse(
            text=response.choices[0].message.content or "",
            model=self.model,
            input_tokens=response.usage.prompt_tokens,
            output_tokens=response.usage.completion_tokens,
        )


def get_provider(config: LLMConfig | None = None, provider_name: str | None = None) -> ProviderAdapter:
    """Build the configured provider.

    Args:
        config: LLM settings; defaults when omitted.
        provider_name: "anthropic" or "openai"; overrides ``config.provider``
            and the ``LLM_PROVIDER`` env var.
    """
    config = config or LLMConfig()
    name = (provider_name or os.getenv("LLM_PROVIDER") or config.provider).lower()
    common = {
        "timeout": float(config.timeout),
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
    }
    if name == "anthropic":
        return AnthropicProvider(config.anthropic_model, **common)
    if name == "openai":
        return OpenAIProvider(config.openai_model, **common)
    raise ValueError(f"Unknown provider: {name}. Use 'anthropic' or 'openai'")
