"""Career data queries, search and skill analysis on top of a data provider."""

from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import structlog

from .records import FORMATTERS
from ..providers.base import DataProvider, SourceNotConfiguredError

logger = structlog.get_logger()

SOURCES = ("initiatives", "achievements", "tasks")

DEFAULT_LIMIT = 20
SEARCH_LIMIT = 20

SORTS: Dict[str, List[Dict[str, str]]] = {
    "initiatives": [
        {"property": "Priority", "direction": "ascending"},
        {"property": "Date Started", "direction": "descending"},
    ],
    "achievements": [{"property": "Date", "direction": "descending"}],
    "tasks": [
        {"property": "Due Date", "direction": "ascending"},
        {"property": "Priority", "direction": "ascending"},
    ],
}

# Text properties matched by search, per source.
SEARCH_FIELDS = {
    "initiatives": [("Name", "title"), ("Description", "rich_text")],
    "achievements": [("Achievement", "title"), ("Description", "rich_text")],
    "tasks": [("Task", "title")],
}


def _combine(conditions: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return {"and": conditions}


def _date_conditions(prop: str, after: Optional[str], before: Optional[str]) -> List[Dict[str, Any]]:
    conditions = []
    if after:
        conditions.append({"property": prop, "date": {"on_or_after": after}})
    if before:
        conditions.append({"property": prop, "date": {"on_or_before": before}})
    return conditions


def proficiency_level(count: int) -> str:
    if count >= 5:
        return "advanced"
    if count >= 2:
        return "intermediate"
    return "beginner"


class CareerDataService:
    """Initiatives, achievements and tasks read through a ``DataProvider``."""

    def __init__(self, provider: DataProvider):
        self.provider = provider

    async def _query(
        self,
        source_id: str,
        conditions: Optional[List[Dict[str, Any]]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        pages = await self.provider.fetch_records(
            source_id, filter=_combine(conditions or []), sort=SORTS[source_id], limit=limit
        )
        return [FORMATTERS[source_id](page) for page in pages]

    async def initiatives(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict[str, Any]]:
        conditions = []
        if status:
            conditions.append({"property": "Status", "status": {"equals": status}})
        if priority:
            conditions.append({"property": "Priority", "select": {"equals": priority}})
        return await self._query("initiatives", conditions, limit)

    async def achievements(
        self,
        category: Optional[str] = None,
        skills: Optional[Iterable[str]] = None,
        date_range: Optional[Dict[str, str]] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict[str, Any]]:
        conditions = []
        if category:
            conditions.append({"property": "Category", "select": {"equals": category}})
        for skill in skills or ():
            conditions.append({"property": "Skills Used", "multi_select": {"contains": skill}})
        if date_range:
            conditions += _date_conditions("Date", date_range.get("start"), date_range.get("end"))
        return await self._query("achievements", conditions, limit)

    async def tasks(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        initiative_id: Optional[str] = None,
        due_date: Optional[Dict[str, str]] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict[str, Any]]:
        conditions = []
        if status:
            conditions.append({"property": "Status", "status": {"equals": status}})
        if priority:
            conditions.append({"property": "Priority", "select": {"equals": priority}})
        if initiative_id:
            conditions.append({"property": "Initiative", "relation": {"contains": initiative_id}})
        if due_date:
            conditions += _date_conditions("Due Date", due_date.get("after"), due_date.get("before"))
        return await self._query("tasks", conditions, limit)

    async def records(self, source_id: str) -> List[Dict[str, Any]]:
        """Every record of a source in its default order."""
        return await self._query(source_id)

    async def record(self, source_id: str, record_id: str) -> Dict[str, Any]:
        page = await self.provider.fetch_record(source_id, record_id)
        return FORMATTERS[source_id](page)

    async def search(
        self,
        query: str,
        data_types: Iterable[str] = SOURCES,
        limit: int = SEARCH_LIMIT,
    ) -> Dict[str, Any]:
        """Search each source; a failing source is reported, not raised."""
        results: Dict[str, Any] = {}

        for source_id in data_types:
            if not self.provider.is_configured(source_id):
                continue

            fields = SEARCH_FIELDS[source_id]
            matches = [{"property": prop, kind: {"contains": query}} for prop, kind in fields]
            condition = matches[0] if len(matches) == 1 else {"or": matches}
            try:
                results[source_id] = await self._query(source_id, [condition], limit)
            except SourceNotConfiguredError:
                continue
            except Exception as e:
                logger.warning("Search failed for source", source=source_id, error=str(e))
                results[source_id] = {"error": f"Search failed: {e}"}

        return {"query": query, "results": results}

    async def skill_analysis(
        self,
        analysis_type: str = "frequency",
        time_period: Optional[Dict[str, str]] = None,
        target_role: Optional[str] = None,
        target_skills: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        achievements = await self.achievements(date_range=time_period, limit=100)
        frequency = Counter(
            skill for achievement in achievements for skill in achievement["skills_used"] if skill
        )

        analysis: Dict[str, Any] = {
            "analysis_type": analysis_type,
            "achievements_analyzed": len(achievements),
        }
        if time_period:
            analysis["time_period"] = time_period

        if analysis_type == "frequency":
            analysis["skill_frequency"] = dict(frequency.most_common())
            analysis["top_skills"] = [skill for skill, _ in frequency.most_common(5)]

        elif analysis_type == "proficiency":
            categories: Dict[str, set] = defaultdict(set)
            for achievement in achievements:
                for skill in achievement["skills_used"]:
                    if achievement["category"]:
                        categories[skill].add(achievement["category"])
            analysis["skills"] = {
                skill: {
                    "count": count,
                    "level": proficiency_level(count),
                    "categories": sorted(categories[skill]),
                }
                for skill, count in frequency.most_common()
            }

        elif analysis_type == "growth":
            timeline: Dict[str, Counter] = defaultdict(Counter)
            for achievement in achievements:
                year = (achievement["date"] or "undated")[:4]
                timeline[year].update(skill for skill in achievement["skills_used"] if skill)
            analysis["skill_timeline"] = {
                year: dict(timeline[year].most_common()) for year in sorted(timeline)
            }

        elif analysis_type == "gaps":
            known = {skill.lower() for skill in frequency}
            targets = target_skills or []
            analysis["target_role"] = target_role
            analysis["covered_skills"] = [skill for skill in targets if skill.lower() in known]
            analysis["missing_skills"] = [skill for skill in targets if skill.lower() not in known]

        return analysis

    async def summary(self) -> str:
        """Markdown overview of whatever sources are configured."""
        lines = ["# Career Intelligence Summary", ""]

        if self.provider.is_configured("initiatives"):
            initiatives = await self.records("initiatives")
            active = [item for item in initiatives if item["status"] == "Active"]
            lines += ["## Initiatives", f"{len(initiatives)} total, {len(active)} active", ""]
            lines += [f"- **{item['name']}** ({item['priority'] or 'no priority'})" for item in active[:5]]
            lines.append("")

        if self.provider.is_configured("achievements"):
            achievements = await self.records("achievements")
            skills = Counter(skill for item in achievements for skill in item["skills_used"] if skill)
            lines += ["## Recent Achievements", f"{len(achievements)} recorded", ""]
            lines += [f"- {item['achievement']} ({item['date'] or 'undated'})" for item in achievements[:5]]
            lines.append("")
            if skills:
                lines += ["## Top Skills", ", ".join(skill for skill, _ in skills.most_common(5)), ""]

        if self.provider.is_configured("tasks"):
            tasks = await self.records("tasks")
            open_tasks = [item for item in tasks if item["status"] != "Completed"]
            lines += ["## Open Tasks", f"{len(open_tasks)} open of {len(tasks)}", ""]
            lines += [f"- {item['task']} (due {item['due_date'] or 'unscheduled'})" for item in open_tasks[:5]]
            lines.append("")

        lines.append(f"*Last updated: {datetime.now(timezone.utc).isoformat()}*")
        return "\n".join(lines) + "\n"
