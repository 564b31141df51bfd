"""Tests for the Match Analyzer stage."""

from __future__ import annotations

import pytest

from ats_tailor.models.analysis import SECTION_NAMES
from ats_tailor.models.job import JobAnalysis
from ats_tailor.pipeline.match_analyzer import (
    MatchAnalyzer,
    compute_match_score,
    partition_keywords,
)
from ats_tailor.utils.json_parser import extract_json_object


@pytest.fixture
def three_keyword_job() -> JobAnalysis:
    return JobAnalysis(title="DBA", keywords=["PowerShell", "Azure SQL", "T-SQL"])


@pytest.fixture
def analysis_json():
    return {
        "strengths": ["PowerShell automation"],
        "gaps": ["No Azure"],
        "suggestions": ["Mention T-SQL tuning"],
        "matchedKeywords": ["PowerShell"],
        "missingKeywords": ["T-SQL"],
        "sectionScores": {
            "header": 90,
            "summary": 70,
            "experience": 80,
            "skills": 90,
            "certifications": 50,
        },
        "matchScore": 99,
    }


class TestPartitionKeywords:
    def test_unplaced_keyword_becomes_missing(self):
        matched, missing = partition_keywords(["PowerShell", "Azure SQL", "T-SQL"], ["PowerShell"])
        assert matched == ["PowerShell"]
        assert missing == ["Azure SQL", "T-SQL"]

    def test_case_insensitive_uses_job_spelling(self):
        matched, missing = partition_keywords(["T-SQL", "SSIS"], ["t-sql "])
        assert matched == ["T-SQL"]
        assert missing == ["SSIS"]

    def test_extra_claims_dropped(self):
        matched, missing = partition_keywords(["SSIS"], ["Kubernetes", "SSIS"])
        assert matched == ["SSIS"]
        assert missing == []

    def test_partition_is_exact_cover(self):
        keywords = ["A", "B", "C", "D"]
        matched, missing = partition_keywords(keywords, ["b", "d", "z"])
        assert sorted(matched + missing) == sorted(keywords)
        assert not set(matched) & set(missing)


class TestComputeMatchScore:
    def test_formula(self):
        # 0.7 * (2/4) + 0.3 * (80+80+80)/300 = 0.35 + 0.24 = 0.59
        score = compute_match_score(["a", "b"], ["a", "b", "c", "d"], {})
        assert score == 59

    def test_rounds_half_up(self):
        # 0.7 * 0 + 0.3 * (75+75+75)/300 = 0.225 -> 22.5 -> 23
        assert compute_match_score([], ["a"], {"summary": 75, "experience": 75, "skills": 75}) == 23

    def test_no_keywords_does_not_divide_by_zero(self):
        assert compute_match_score([], [], {"summary": 100, "experience": 100, "skills": 100}) == 30

    def test_clamped(self):
        score = compute_match_score(["a"], ["a"], {"summary": 500, "experience": 500, "skills": 500})
        assert score == 100

    def test_pure(self):
        args = (["a"], ["a", "b"], {"summary": 60, "experience": 70, "skills": 80})
        assert compute_match_score(*args) == compute_match_score(*args)


class TestMatchAnalyzer:
    async def test_unplaced_keyword_ends_up_missing(self, mock_provider, three_keyword_job, analysis_json):
        mock_provider.generate.return_value = analysis_json
        analyzer = MatchAnalyzer(mock_provider)

        result = await analyzer.analyze("résumé text", three_keyword_job)

        assert result.matched_keywords == ["PowerShell"]
        assert result.missing_keywords == ["Azure SQL", "T-SQL"]

    async def test_model_score_discarded(self, mock_provider, three_keyword_job, analysis_json):
        mock_provider.generate.return_value = analysis_json
        analyzer = MatchAnalyzer(mock_provider)

        result = await analyzer.analyze("résumé text", three_keyword_job)

        expected = compute_match_score(
            ["PowerShell"], three_keyword_job.keywords, analysis_json["sectionScores"]
        )
        assert result.match_score == expected
        assert result.match_score != 99

    async def test_same_evidence_same_score_across_providers(
        self, mock_provider, three_keyword_job, analysis_json
    ):
        """Two backends reporting different self-scores for the same evidence agree."""
        analyzer = MatchAnalyzer(mock_provider)
        first = analyzer.normalize(dict(analysis_json, matchScore=10), three_keyword_job)
        second = analyzer.normalize(dict(analysis_json, matchScore=95), three_keyword_job)
        assert first.match_score == second.match_score

    async def test_section_scores_filled_and_clamped(self, mock_provider, three_keyword_job, analysis_json):
        analysis_json["sectionScores"] = {"summary": 140, "skills": "-5", "experience": "n/a"}
        mock_provider.generate.return_value = analysis_json
        analyzer = MatchAnalyzer(mock_provider, default_section_score=80)

        result = await analyzer.analyze("résumé text", three_keyword_job)

        assert set(result.section_scores) == set(SECTION_NAMES)
        assert result.section_scores["summary"] == 100
        assert result.section_scores["skills"] == 0
        assert result.section_scores["experience"] == 80
        assert result.section_scores["header"] == 80

    def test_non_finite_section_scores_use_default(self, mock_provider, three_keyword_job):
        data = extract_json_object('{"sectionScores": {"summary": NaN, "skills": "Infinity", "header": -Infinity}}')

        result = MatchAnalyzer(mock_provider).normalize(data, three_keyword_job)

        assert result.section_scores["summary"] == 80
        assert result.section_scores["skills"] == 80
        assert result.section_scores["header"] == 80

    async def test_non_list_fields_coerced(self, mock_provider, three_keyword_job):
        mock_provider.generate.return_value = {"strengths": "good", "matchedKeywords": None}
        analyzer = MatchAnalyzer(mock_provider)

        result = await analyzer.analyze("résumé text", three_keyword_job)

        assert result.strengths == []
        assert result.matched_keywords == []
        assert result.missing_keywords == three_keyword_job.keywords
