"""Tests for config validation."""

import pytest

from ats_tailor.config import LLMConfig, PipelineConfig, load_config


class TestConfigValidation:
    def test_valid_defaults(self):
        """Default config passes validation without raising."""
        config = load_config(None)
        assert config.llm.timeout == 120
        assert config.pipeline.skills_min <= config.pipeline.skills_max

    @pytest.mark.parametrize(
        ("section", "field", "value"),
        [
            ("llm", "timeout", 0),
            ("llm", "max_retries", 0),
            ("llm", "temperature", 3.5),
            ("pipeline", "default_section_score", 140),
            ("pipeline", "stale_after_seconds", 0),
            ("cache", "scrape_ttl_seconds", -1),
            ("cache", "insights_ttl_seconds", 999999),
        ],
    )
    def test_out_of_range_rejected(self, tmp_path, section, field, value):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text(f"{section}:\n  {field}: {value}\n")
        with pytest.raises(ValueError, match=field):
            load_config(yaml)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="provider"):
            LLMConfig(provider="mystery")

    def test_blank_headline(self):
        with pytest.raises(ValueError, match="fixed_headline"):
            PipelineConfig(fixed_headline="   ")

    def test_skill_bounds_order(self):
        with pytest.raises(ValueError, match="skills_min"):
            PipelineConfig(skills_min=12, skills_max=10)

    def test_unknown_key_rejected(self, tmp_path):
        yaml = tmp_path / "bad.yaml"
        yaml.write_text("pipeline:\n  qa_threshold: 80\n")
        with pytest.raises(TypeError):
            load_config(yaml)
