"""Formatting of raw Notion pages into career records."""

from typing import Any, Callable, Dict, List, Optional


def extract_title(prop: Optional[Dict[str, Any]]) -> str:
    title = (prop or {}).get("title") or []
    return title[0].get("plain_text", "") if title else ""


def extract_rich_text(prop: Optional[Dict[str, Any]]) -> str:
    return "".join(part.get("plain_text", "") for part in (prop or {}).get("rich_text") or [])


def extract_select(prop: Optional[Dict[str, Any]]) -> str:
    # Status properties carry the same shape under their own key.
    option = (prop or {}).get("select") or (prop or {}).get("status") or {}
    return option.get("name", "")


def extract_multi_select(prop: Optional[Dict[str, Any]]) -> List[str]:
    return [option.get("name", "") for option in (prop or {}).get("multi_select") or []]


def extract_date(prop: Optional[Dict[str, Any]]) -> Optional[str]:
    date = (prop or {}).get("date") or {}
    return date.get("start")


def extract_relation(prop: Optional[Dict[str, Any]]) -> List[str]:
    return [item.get("id", "") for item in (prop or {}).get("relation") or []]


def format_initiative(page: Dict[str, Any]) -> Dict[str, Any]:
    properties = page.get("properties", {})
    return {
        "id": page.get("id"),
        "name": extract_title(properties.get("Name")),
        "status": extract_select(properties.get("Status")),
        "priority": extract_select(properties.get("Priority")),
        "description": extract_rich_text(properties.get("Description")),
        "date_started": extract_date(properties.get("Date Started")),
        "date_completed": extract_date(properties.get("Date Completed")),
        "created_time": page.get("created_time"),
        "last_edited_time": page.get("last_edited_time"),
    }


def format_achievement(page: Dict[str, Any]) -> Dict[str, Any]:
    properties = page.get("properties", {})
    return {
        "id": page.get("id"),
        "achievement": extract_title(properties.get("Achievement")),
        "description": extract_rich_text(properties.get("Description")),
        "category": extract_select(properties.get("Category")),
        "skills_used": extract_multi_select(properties.get("Skills Used")),
        "date": extract_date(properties.get("Date")),
        "created_time": page.get("created_time"),
        "last_edited_time": page.get("last_edited_time"),
    }


def format_task(page: Dict[str, Any]) -> Dict[str, Any]:
    properties = page.get("properties", {})
    return {
        "id": page.get("id"),
        "task": extract_title(properties.get("Task")),
        "status": extract_select(properties.get("Status")),
        "priority": extract_select(properties.get("Priority")),
        "due_date": extract_date(properties.get("Due Date")),
        "tags": extract_multi_select(properties.get("Tags")),
        "initiative_ids": extract_relation(properties.get("Initiative")),
        "created_time": page.get("created_time"),
        "last_edited_time": page.get("last_edited_time"),
    }


FORMATTERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "initiatives": format_initiative,
    "achievements": format_achievement,
    "tasks": format_task,
}
