"""Tests for config loading."""

import pytest

from ats_tailor.config import (
    DEFAULT_HEADLINE,
    AppConfig,
    LLMConfig,
    PipelineConfig,
    StoreConfig,
    load_config,
)


class TestConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.llm.provider == "anthropic"
        assert config.llm.model == "claude-sonnet-4-5-20250929"
        assert config.pipeline.fixed_headline == DEFAULT_HEADLINE
        assert config.pipeline.default_section_score == 80
        assert config.cache.scrape_ttl_seconds == 3600

    def test_load_config_defaults(self, tmp_path):
        """Loading from non-existent path returns defaults."""
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config == AppConfig()

    def test_load_config_from_yaml(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text(
            "llm:\n  provider: openai\n  openai_model: gpt-4o-mini\n"
            "pipeline:\n  fixed_headline: Data Platform Engineer\n"
            "  banned_summary_prefixes:\n    - 'Objective:'\n"
        )
        config = load_config(yaml_path)
        assert config.llm.model == "gpt-4o-mini"
        assert config.pipeline.fixed_headline == "Data Platform Engineer"
        assert config.pipeline.banned_summary_prefixes == ("objective:",)
        # Defaults for unspecified
        assert config.pipeline.stale_after_seconds == 300

    def test_store_resolved_paths(self):
        store = StoreConfig(db_path="~/test.db", usage_db_path="~/usage.db")
        assert "~" not in str(store.resolved_db_path)
        assert "~" not in str(store.resolved_usage_db_path)

    def test_frozen_config(self):
        config = LLMConfig()
        with pytest.raises(AttributeError):
            config.provider = "openai"

    def test_empty_yaml_is_defaults(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text("")
        assert load_config(yaml_path).pipeline == PipelineConfig()
