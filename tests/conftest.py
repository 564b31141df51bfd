"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ats_tailor.clients.llm_client import ProviderAdapter
from ats_tailor.models.analysis import ResumeAnalysis
from ats_tailor.models.job import JobAnalysis, KeywordBuckets, QualityGates
from ats_tailor.models.resume import ContactInformation, SourceProfile, SourceRole


@pytest.fixture
def sample_jd_text() -> str:
    return """Senior SQL Server Database Administrator - Contoso Health

We are looking for a DBA to own our SQL Server 2019 estate.

Responsibilities:
- Performance Tuning and Query Optimization across OLTP workloads
- Backup and Recovery planning, AlwaysOn Availability Groups
- Automate maintenance with PowerShell and SQL Agent
- Support HIPAA audits and Security reviews

Requirements:
- 7+ years of SQL Server administration
- Experience with Azure SQL and T-SQL
- Monitoring with SolarWinds or Redgate
- Occasional on-call; hybrid (2 days onsite)
"""


@pytest.fixture
def sample_resume_text() -> str:
    return """Jordan Rivera
Phoenix, AZ | 602-555-0100 | jordan.rivera@example.com | linkedin.com/in/jrivera

SUMMARY
Database administrator with 10 years supporting SQL Server in healthcare.

EXPERIENCE
Senior Database Administrator | Banner Health | 2019 - Present
- Ran a 40-instance SQL Server 2016/2019 estate with AlwaysOn AGs
- Cut average query time 35% through index and query tuning

Database Administrator | Honor Health | 2015 - 2019
- Automated backups and restore tests with PowerShell
- Supported HIPAA audit evidence collection

SKILLS
SQL Server, T-SQL, PowerShell, AlwaysOn, Azure SQL, SSIS
"""


@pytest.fixture
def sample_job_analysis() -> JobAnalysis:
    return JobAnalysis(
        title="Senior SQL Server Database Administrator",
        company="Contoso Health",
        keywords=["SQL Server", "T-SQL", "PowerShell", "AlwaysOn", "Kubernetes"],
        keyword_buckets=KeywordBuckets(
            core_tech=["SQL Server", "T-SQL", "AlwaysOn"],
            responsibilities=["Performance Tuning", "Backup"],
            tools=["PowerShell"],
            compliance=["HIPAA"],
            logistics=["hybrid"],
        ),
        quality_gates=QualityGates(sufficient_length=True, role_specific=True, not_generic=True),
        requirements=["7+ years of SQL Server administration"],
        role_archetype="SQL Server DBA",
        char_count=3200,
        word_count=480,
    )


@pytest.fixture
def sample_resume_analysis() -> ResumeAnalysis:
    return ResumeAnalysis(
        strengths=["Deep SQL Server HA experience"],
        gaps=["No Kubernetes exposure"],
        suggestions=["Lead with AlwaysOn work"],
        matched_keywords=["SQL Server", "T-SQL", "PowerShell", "AlwaysOn"],
        missing_keywords=["Kubernetes"],
        section_scores={
            "header": 90,
            "summary": 80,
            "experience": 85,
            "skills": 75,
            "certifications": 60,
        },
        match_score=80,
    )


@pytest.fixture
def sample_profile() -> SourceProfile:
    return SourceProfile(
        contact=ContactInformation(
            name="Jordan Rivera",
            phone="602-555-0100",
            email="jordan.rivera@example.com",
            city="Phoenix",
            state="AZ",
            linkedin="linkedin.com/in/jrivera",
        ),
        roles=[
            SourceRole(
                title="Senior Database Administrator",
                company="Banner Health",
                duration="2019 - Present",
            ),
            SourceRole(
                title="Database Administrator",
                company="Honor Health",
                duration="2015 - 2019",
            ),
        ],
    )


@pytest.fixture
def tailored_draft() -> dict:
    """A well-formed tailoring response as a provider would return it."""
    return {
        "contact": {
            "name": "Jordan Rivera",
            "title": "Senior Database Administrator | SQL Server & Cloud Data Platforms",
            "phone": "602-555-0100",
            "email": "jordan.rivera@example.com",
            "city": "Phoenix",
            "state": "AZ",
            "linkedin": "linkedin.com/in/jrivera",
        },
        "summary": "SQL Server DBA with 10 years of healthcare HA/DR experience.",
        "experience": [
            {
                "title": "Senior Database Administrator",
                "company": "Banner Health",
                "duration": "2019 - Present",
                "achievements": [
                    "Ran a 40-instance SQL Server estate with AlwaysOn AGs",
                    "Cut average query time 35% through T-SQL tuning",
                ],
            },
            {
                "title": "Database Administrator",
                "company": "Honor Health",
                "duration": "2015 - 2019",
                "achievements": ["Automated backups with PowerShell"],
            },
        ],
        "skills": [
            "SQL Server 2016/2019",
            "T-SQL",
            "AlwaysOn Availability Groups",
            "PowerShell",
            "Azure SQL",
            "SSIS",
            "Performance Tuning",
            "Backup and Recovery",
        ],
        "keywords": ["SQL Server", "T-SQL", "PowerShell", "AlwaysOn"],
        "certifications": [],
        "professionalDevelopment": [],
        "education": ["B.S. Computer Information Systems"],
        "improvements": ["Moved AlwaysOn work to the first bullet"],
        "atsScore": 82,
        "coreScore": 80,
        "scoreBreakdown": {
            "coreTech": {"earned": 30, "possible": 35, "evidence": ["SQL Server estate"]},
            "responsibilities": {"earned": 20, "possible": 25, "evidence": []},
            "tools": {"earned": 12, "possible": 15, "evidence": []},
            "adjacentDataStores": {"earned": 5, "possible": 10, "evidence": []},
            "compliance": {"earned": 10, "possible": 10, "evidence": ["HIPAA audit"]},
            "logistics": {"earned": 5, "possible": 5, "evidence": []},
        },
        "coverageReport": {
            "matchedKeywords": ["SQL Server", "T-SQL", "PowerShell", "AlwaysOn"],
            "missingKeywords": [],
            "truthfulnessLevel": {
                "SQL Server": "hands-on",
                "Azure SQL": "familiar",
                "Kubernetes": "omitted",
            },
        },
        "appliedMicroEdits": ["Added 'Availability Groups' to AlwaysOn bullet"],
        "suggestedMicroEdits": ["Mention SolarWinds if used"],
    }


@pytest.fixture
def mock_provider() -> ProviderAdapter:
    """Create a mock provider adapter."""
    provider = AsyncMock(spec=ProviderAdapter)
    provider.name = "mock/test-model"
    provider.generate = AsyncMock(return_value={})
    return provider
