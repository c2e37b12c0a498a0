"""Tests for record formatting and the career data service."""

import pytest

from career_mcp.career.records import extract_select, format_achievement, format_initiative, format_task
from career_mcp.career.service import CareerDataService, proficiency_level
from career_mcp.providers.base import DataProviderError

from conftest import StaticDataProvider, page, sample_records, select, status, title


class TestRecords:
    """Test formatting of Notion pages."""

    def test_format_initiative(self):
        """Test initiative fields."""
        initiative = format_initiative(sample_records()["initiatives"][0])

        assert initiative["id"] == "init-1"
        assert initiative["name"] == "Platform Migration"
        assert initiative["status"] == "Active"
        assert initiative["priority"] == "High"
        assert initiative["description"] == "Move services to Kubernetes"
        assert initiative["date_started"] == "2024-01-15"
        assert initiative["date_completed"] is None

    def test_format_achievement(self):
        """Test achievement fields."""
        achievement = format_achievement(sample_records()["achievements"][1])

        assert achievement["achievement"] == "Mentored interns"
        assert achievement["category"] == "Business/Leadership"
        assert achievement["skills_used"] == ["Leadership", "Python"]

    def test_format_task(self):
        """Test task fields."""
        task = format_task(sample_records()["tasks"][0])

        assert task["task"] == "Write design doc"
        assert task["due_date"] == "2024-05-01"
        assert task["tags"] == ["writing"]
        assert task["initiative_ids"] == ["init-1"]

    def test_missing_properties(self):
        """Test absent properties format as empty values."""
        initiative = format_initiative(page("bare"))

        assert initiative["name"] == ""
        assert initiative["status"] == ""
        assert initiative["date_started"] is None

    def test_select_and_status(self):
        """Test select and status properties read the same way."""
        assert extract_select(select("High")) == "High"
        assert extract_select(status("Done")) == "Done"
        assert extract_select(None) == ""


class TestSearch:
    """Test cross-source search."""

    @pytest.mark.asyncio
    async def test_search_all_sources(self, service, provider):
        """Test every configured source is searched on its text fields."""
        result = await service.search("python")

        assert result["query"] == "python"
        assert set(result["results"]) == {"initiatives", "achievements", "tasks"}
        assert provider.queries[0]["filter"] == {
            "or": [
                {"property": "Name", "title": {"contains": "python"}},
                {"property": "Description", "rich_text": {"contains": "python"}},
            ]
        }

    @pytest.mark.asyncio
    async def test_unconfigured_sources_skipped(self):
        """Test sources without a database are left out."""
        records = sample_records()
        del records["tasks"]
        service = CareerDataService(StaticDataProvider(records=records))

        result = await service.search("x", data_types=["tasks", "achievements"])

        assert set(result["results"]) == {"achievements"}

    @pytest.mark.asyncio
    async def test_failure_reported_per_source(self):
        """Test a failing source is reported instead of failing the search."""
        service = CareerDataService(StaticDataProvider(error=DataProviderError("boom")))

        result = await service.search("x", data_types=["initiatives"])

        assert result["results"]["initiatives"] == {"error": "Search failed: boom"}


class TestSkillAnalysis:
    """Test skill analysis over achievements."""

    @pytest.mark.asyncio
    async def test_frequency(self, service):
        """Test skill counts and top skills."""
        analysis = await service.skill_analysis("frequency")

        assert analysis["achievements_analyzed"] == 3
        assert analysis["skill_frequency"]["Python"] == 3
        assert analysis["top_skills"][0] == "Python"

    @pytest.mark.asyncio
    async def test_proficiency(self, service):
        """Test levels and categories per skill."""
        analysis = await service.skill_analysis("proficiency")

        python = analysis["skills"]["Python"]
        assert python["level"] == "intermediate"
        assert python["categories"] == ["Academic", "Business/Leadership", "Technical/SWE"]
        assert analysis["skills"]["Research"]["level"] == "beginner"

    @pytest.mark.asyncio
    async def test_growth(self, service):
        """Test skills bucketed per year."""
        analysis = await service.skill_analysis("growth")

        assert list(analysis["skill_timeline"]) == ["2023", "2024"]
        assert analysis["skill_timeline"]["2023"]["Python"] == 2

    @pytest.mark.asyncio
    async def test_gaps(self, service):
        """Test covered and missing target skills."""
        analysis = await service.skill_analysis(
            "gaps", target_role="Staff Engineer", target_skills=["python", "Kubernetes"]
        )

        assert analysis["target_role"] == "Staff Engineer"
        assert analysis["covered_skills"] == ["python"]
        assert analysis["missing_skills"] == ["Kubernetes"]

    @pytest.mark.asyncio
    async def test_time_period_filters_query(self, service, provider):
        """Test the time period is pushed down as a date filter."""
        await service.skill_analysis("frequency", time_period={"start": "2024-01-01"})

        assert provider.queries[0]["filter"] == {"property": "Date", "date": {"on_or_after": "2024-01-01"}}
        assert provider.queries[0]["limit"] == 100

    def test_proficiency_levels(self):
        """Test the usage thresholds."""
        assert [proficiency_level(count) for count in (1, 2, 4, 5)] == [
            "beginner", "intermediate", "intermediate", "advanced",
        ]


class TestSummary:
    """Test the markdown career summary."""

    @pytest.mark.asyncio
    async def test_summary_sections(self, service):
        """Test every configured source contributes a section."""
        summary = await service.summary()

        assert "## Initiatives" in summary
        assert "2 total, 1 active" in summary
        assert "## Recent Achievements" in summary
        assert "## Open Tasks" in summary
        assert "1 open of 2" in summary

    @pytest.mark.asyncio
    async def test_summary_skips_unconfigured(self):
        """Test missing sources are left out of the summary."""
        service = CareerDataService(
            StaticDataProvider(records={"initiatives": [page("i", Name=title("Solo"), Status=status("Active"))]})
        )

        summary = await service.summary()

        assert "Solo" in summary
        assert "## Open Tasks" not in summary
