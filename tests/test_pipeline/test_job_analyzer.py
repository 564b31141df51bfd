"""Tests for the Job Analyzer stage."""

from __future__ import annotations

import logging

import pytest

from ats_tailor.errors import InvalidInput, MalformedResponse
from ats_tailor.models.job import BUCKET_KEYS
from ats_tailor.pipeline.job_analyzer import JobAnalyzer, detect_catalog_keywords


@pytest.fixture
def job_json():
    return {
        "title": "Senior SQL Server DBA",
        "company": "Contoso Health",
        "requirements": ["7+ years of SQL Server administration"],
        "keywords": ["SQL Server", "T-SQL", "sql server", "PowerShell"],
        "roleArchetype": "SQL Server DBA",
        "qualityGates": {"sufficientLength": True, "roleSpecific": True, "notGeneric": True},
        "keywordBuckets": {
            "coreTech": ["SQL Server", "T-SQL"],
            "tools": ["PowerShell"],
        },
        "synonymMap": {"AlwaysOn": ["Availability Groups"]},
    }


class TestJobAnalyzer:
    async def test_analyze_returns_job_analysis(self, mock_provider, sample_jd_text, job_json):
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze(sample_jd_text)

        assert result.title == "Senior SQL Server DBA"
        assert result.company == "Contoso Health"
        assert result.role_archetype == "SQL Server DBA"
        assert result.char_count == len(sample_jd_text)
        assert result.word_count == len(sample_jd_text.split())
        mock_provider.generate.assert_called_once()

    async def test_short_posting_is_never_sufficient_length(self, mock_provider, job_json):
        """A 500-character posting fails the length gate even if the model says otherwise."""
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze("x" * 500)

        assert result.quality_gates.sufficient_length is False
        assert result.low_confidence is True

    async def test_long_posting_is_sufficient_length(self, mock_provider, job_json):
        job_json["qualityGates"]["sufficientLength"] = False
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze("word " * 700)

        assert result.quality_gates.sufficient_length is True

    async def test_keywords_deduplicated_case_insensitively(self, mock_provider, sample_jd_text, job_json):
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze(sample_jd_text)

        lowered = [k.lower() for k in result.keywords]
        assert len(lowered) == len(set(lowered))
        # First spelling wins, model order first
        assert result.keywords[:3] == ["SQL Server", "T-SQL", "PowerShell"]

    async def test_catalog_keywords_merged(self, mock_provider, sample_jd_text, job_json):
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze(sample_jd_text)

        assert "AlwaysOn" in result.keywords
        assert "Azure SQL" in result.keywords

    async def test_missing_buckets_filled(self, mock_provider, sample_jd_text, job_json):
        job_json["keywordBuckets"] = {"coreTech": "SQL Server", "logistics": None}
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze(sample_jd_text)

        buckets = result.keyword_buckets.to_wire()
        assert set(buckets) == set(BUCKET_KEYS)
        assert all(value == [] for value in buckets.values())

    async def test_missing_gates_default_true(self, mock_provider, sample_jd_text, job_json):
        del job_json["qualityGates"]
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze(sample_jd_text)

        assert result.quality_gates.role_specific is True
        assert result.quality_gates.not_generic is True

    async def test_hints_fill_empty_fields(self, mock_provider, sample_jd_text, job_json):
        job_json["title"] = ""
        job_json["company"] = None
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        result = await analyzer.analyze(
            sample_jd_text,
            title_hint="DBA II",
            company_hint="Contoso",
            requirements_hint=["On-call rotation"],
        )

        assert result.title == "DBA II"
        assert result.company == "Contoso"
        assert "On-call rotation" in result.requirements

    @pytest.mark.parametrize("text", ["", "   \n\t"])
    async def test_blank_text_rejected(self, mock_provider, text):
        analyzer = JobAnalyzer(mock_provider)
        with pytest.raises(InvalidInput):
            await analyzer.analyze(text)
        mock_provider.generate.assert_not_called()

    async def test_low_confidence_logged(self, mock_provider, job_json, caplog):
        mock_provider.generate.return_value = job_json
        analyzer = JobAnalyzer(mock_provider)

        with caplog.at_level(logging.WARNING, logger="ats_tailor.pipeline.job_analyzer"):
            await analyzer.analyze("short posting")

        assert "Low-confidence" in caplog.text

    def test_synonym_map_values_coerced(self, mock_provider, sample_jd_text, job_json):
        job_json["synonymMap"] = {"x": ["a", 3, None], "y": "not a list"}
        analyzer = JobAnalyzer(mock_provider)
        result = analyzer.normalize(job_json, sample_jd_text)
        assert result.synonym_map == {"x": ["a", "3"], "y": []}

    async def test_provider_error_propagates(self, mock_provider, sample_jd_text):
        mock_provider.generate.side_effect = MalformedResponse("bad json")
        analyzer = JobAnalyzer(mock_provider)
        with pytest.raises(MalformedResponse):
            await analyzer.analyze(sample_jd_text)


class TestDetectCatalogKeywords:
    def test_case_insensitive(self):
        assert "PowerShell" in detect_catalog_keywords("Scripting in powershell")

    def test_no_matches(self):
        assert detect_catalog_keywords("Barista wanted") == []

    def test_spelling_variants_yield_one_keyword(self):
        found = detect_catalog_keywords("Strong T-SQL skills; TSQL stored procedures; Always-On AGs")
        assert found.count("T-SQL") == 1
        assert "TSQL" not in found
        assert "AlwaysOn" in found

    def test_unhyphenated_spelling_detected(self):
        assert detect_catalog_keywords("Write TSQL daily") == ["T-SQL"]
