"""Career intelligence tools over initiatives, achievements and tasks."""

from typing import Any, Dict, List

from .base import Tool
from ..career.service import DEFAULT_LIMIT, SEARCH_LIMIT, SOURCES
from ..protocol.errors import InvalidParamsError

PRIORITIES = ["High", "Medium", "Low"]

DATE_RANGE = {
    "type": "object",
    "properties": {
        "start": {"type": "string", "format": "date"},
        "end": {"type": "string", "format": "date"},
    },
}


def _limit_schema(default: int, subject: str) -> Dict[str, Any]:
    return {
        "type": "integer",
        "minimum": 1,
        "maximum": 100,
        "default": default,
        "description": f"Maximum number of {subject} to return",
    }


class CareerInitiativesTool(Tool):
    """Initiatives filtered by status and priority."""

    @property
    def name(self) -> str:
        return "get_career_initiatives"

    @property
    def description(self) -> str:
        return "Retrieve career development initiatives with optional filtering"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": ["Active", "Completed", "On Hold", "Cancelled"],
                    "description": "Filter by initiative status",
                },
                "priority": {
                    "type": "string",
                    "enum": PRIORITIES,
                    "description": "Filter by priority level",
                },
                "limit": _limit_schema(DEFAULT_LIMIT, "initiatives"),
            },
            "required": [],
        }

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        initiatives = await self.service.initiatives(
            status=arguments.get("status"),
            priority=arguments.get("priority"),
            limit=arguments.get("limit", DEFAULT_LIMIT),
        )
        return {"initiatives": initiatives, "total": len(initiatives)}


class AchievementsTool(Tool):
    """Achievements filtered by category, skills and date range."""

    @property
    def name(self) -> str:
        return "get_achievements"

    @property
    def description(self) -> str:
        return "Fetch accomplishments and achievements from career database"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "category": {
                    "type": "string",
                    "enum": ["Technical/SWE", "Business/Leadership", "Academic", "Networking"],
                    "description": "Filter by achievement category",
                },
                "skills": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Filter by skills used in achievements",
                },
                "date_range": dict(DATE_RANGE, description="Date range filter"),
                "limit": _limit_schema(DEFAULT_LIMIT, "achievements"),
            },
            "required": [],
        }

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        achievements = await self.service.achievements(
            category=arguments.get("category"),
            skills=arguments.get("skills"),
            date_range=arguments.get("date_range"),
            limit=arguments.get("limit", DEFAULT_LIMIT),
        )
        return {"achievements": achievements, "total": len(achievements)}


class TasksTool(Tool):
    """Tasks filtered by status, priority, initiative and due date."""

    @property
    def name(self) -> str:
        return "get_tasks"

    @property
    def description(self) -> str:
        return "Get current career development tasks and action items"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": ["Not Started", "In Progress", "Completed", "Blocked"],
                    "description": "Filter by task status",
                },
                "priority": {
                    "type": "string",
                    "enum": PRIORITIES,
                    "description": "Filter by priority level",
                },
                "initiative_id": {
                    "type": "string",
                    "description": "Filter by related initiative ID",
                },
                "due_date": {
                    "type": "object",
                    "properties": {
                        "before": {"type": "string", "format": "date"},
                        "after": {"type": "string", "format": "date"},
                    },
                    "description": "Due date filter",
                },
                "limit": _limit_schema(DEFAULT_LIMIT, "tasks"),
            },
            "required": [],
        }

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        tasks = await self.service.tasks(
            status=arguments.get("status"),
            priority=arguments.get("priority"),
            initiative_id=arguments.get("initiative_id"),
            due_date=arguments.get("due_date"),
            limit=arguments.get("limit", DEFAULT_LIMIT),
        )
        return {"tasks": tasks, "total": len(tasks)}


class SearchCareerDataTool(Tool):
    """Text search across every configured source."""

    @property
    def name(self) -> str:
        return "search_career_data"

    @property
    def description(self) -> str:
        return "Search across all career data (initiatives, achievements, tasks)"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "minLength": 1,
                    "description": "Search query text",
                },
                "data_types": {
                    "type": "array",
                    "items": {"type": "string", "enum": list(SOURCES)},
                    "default": list(SOURCES),
                    "description": "Types of data to search",
                },
                "limit": _limit_schema(SEARCH_LIMIT, "results"),
            },
            "required": ["query"],
        }

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await self.service.search(
            arguments["query"],
            data_types=arguments.get("data_types") or SOURCES,
            limit=arguments.get("limit", SEARCH_LIMIT),
        )


class SkillAnalysisTool(Tool):
    """Skill statistics derived from achievements."""

    @property
    def name(self) -> str:
        return "get_skill_analysis"

    @property
    def description(self) -> str:
        return "Analyze skills and competencies based on career data"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "analysis_type": {
                    "type": "string",
                    "enum": ["frequency", "proficiency", "growth", "gaps"],
                    "default": "frequency",
                    "description": "Type of skill analysis to perform",
                },
                "time_period": dict(DATE_RANGE, description="Time period for analysis"),
                "target_role": {
                    "type": "string",
                    "description": "Target role for gap analysis",
                },
                "target_skills": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "description": "Skills the target role requires (gap analysis)",
                },
            },
            "required": [],
        }

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        analysis_type = arguments.get("analysis_type", "frequency")
        if analysis_type == "gaps" and not arguments.get("target_skills"):
            raise InvalidParamsError(
                "Gap analysis requires target_skills",
                [{"field": "target_skills", "type": "missing", "message": "Field required"}],
            )

        return await self.service.skill_analysis(
            analysis_type=analysis_type,
            time_period=arguments.get("time_period"),
            target_role=arguments.get("target_role"),
            target_skills=arguments.get("target_skills"),
        )


def create_career_tools(service) -> List[Tool]:
    """Instantiate every career tool in listing order."""
    return [
        CareerInitiativesTool(service),
        AchievementsTool(service),
        TasksTool(service),
        SearchCareerDataTool(service),
        SkillAnalysisTool(service),
    ]
