"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_HEADLINE = "Senior Database Administrator | SQL Server & Cloud Data Platforms"

DEFAULT_BANNED_PREFIXES: tuple[str, ...] = (
    "target:",
    "target role:",
    "target company:",
)


def _check_range(name: str, value: float, low: float, high: float | None = None) -> None:
    if value < low or (high is not None and value > high):
        bound = f">= {low}" if high is None else f"between {low} and {high}"
        raise ValueError(f"{name} must be {bound}, got {value!r}")


@dataclass(frozen=True)
class LLMConfig:
    provider: str = "anthropic"
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_model: str = "gpt-4o"
    max_retries: int = 3
    timeout: int = 120
    temperature: float = 0.2
    max_tokens: int = 8192

    def __post_init__(self) -> None:
        if self.provider not in ("anthropic", "openai"):
            raise ValueError(f"provider must be 'anthropic' or 'openai', got {self.provider!r}")
        _check_range("max_retries", self.max_retries, 1, 10)
        _check_range("timeout", self.timeout, 1)
        _check_range("temperature", self.temperature, 0.0, 2.0)

    @property
    def model(self) -> str:
        return self.anthropic_model if self.provider == "anthropic" else self.openai_model


@dataclass(frozen=True)
class PipelineConfig:
    fixed_headline: str = DEFAULT_HEADLINE
    banned_summary_prefixes: tuple[str, ...] = DEFAULT_BANNED_PREFIXES
    sufficient_length_chars: int = 3000
    default_section_score: int = 80
    skills_min: int = 8
    skills_max: int = 10
    stale_after_seconds: int = 300

    def __post_init__(self) -> None:
        if not self.fixed_headline.strip():
            raise ValueError("fixed_headline must not be empty")
        # YAML hands us lists
        object.__setattr__(
            self,
            "banned_summary_prefixes",
            tuple(p.strip().lower() for p in self.banned_summary_prefixes),
        )
        _check_range("default_section_score", self.default_section_score, 0, 100)
        _check_range("sufficient_length_chars", self.sufficient_length_chars, 0)
        _check_range("stale_after_seconds", self.stale_after_seconds, 1)
        if self.skills_min > self.skills_max:
            raise ValueError("skills_min must not exceed skills_max")


@dataclass(frozen=True)
class StoreConfig:
    db_path: str = "~/.ats-tailor/sessions.db"
    usage_db_path: str = "~/.ats-tailor/usage.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()

    @property
    def resolved_usage_db_path(self) -> Path:
        return Path(self.usage_db_path).expanduser()


@dataclass(frozen=True)
class CacheConfig:
    scrape_ttl_seconds: int = 3600
    insights_ttl_seconds: int = 300

    def __post_init__(self) -> None:
        _check_range("scrape_ttl_seconds", self.scrape_ttl_seconds, 0, 7 * 86400)
        _check_range("insights_ttl_seconds", self.insights_ttl_seconds, 0, 86400)


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        pipeline=PipelineConfig(**raw.get("pipeline", {})),
        store=StoreConfig(**raw.get("store", {})),
        cache=CacheConfig(**raw.get("cache", {})),
    )
