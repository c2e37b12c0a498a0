"""Tool implementations for career intelligence."""

from .base import Tool, ToolRegistry, validate_schema
from .career_tools import (
    AchievementsTool,
    CareerInitiativesTool,
    SearchCareerDataTool,
    SkillAnalysisTool,
    TasksTool,
    create_career_tools,
)

__all__ = [
    "Tool",
    "ToolRegistry",
    "validate_schema",
    "AchievementsTool",
    "CareerInitiativesTool",
    "SearchCareerDataTool",
    "SkillAnalysisTool",
    "TasksTool",
    "create_career_tools",
]
