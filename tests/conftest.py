"""Shared fixtures: an in-memory data provider and Notion-shaped sample pages."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from career_mcp.career.service import CareerDataService
from career_mcp.providers.base import DataProvider, RecordNotFoundError, SourceNotConfiguredError


def title(text: str) -> Dict[str, Any]:
    return {"title": [{"plain_text": text}]}


def rich_text(text: str) -> Dict[str, Any]:
    return {"rich_text": [{"plain_text": text}]}


def select(name: str) -> Dict[str, Any]:
    return {"select": {"name": name}}


def status(name: str) -> Dict[str, Any]:
    return {"status": {"name": name}}


def multi_select(*names: str) -> Dict[str, Any]:
    return {"multi_select": [{"name": name} for name in names]}


def date(start: Optional[str]) -> Dict[str, Any]:
    return {"date": {"start": start} if start else None}


def relation(*ids: str) -> Dict[str, Any]:
    return {"relation": [{"id": page_id} for page_id in ids]}


def page(page_id: str, **properties: Any) -> Dict[str, Any]:
    return {
        "id": page_id,
        "created_time": "2024-01-01T00:00:00.000Z",
        "last_edited_time": "2024-02-01T00:00:00.000Z",
        "properties": properties,
    }


def sample_records() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "initiatives": [
            page(
                "init-1",
                Name=title("Platform Migration"),
                Status=status("Active"),
                Priority=select("High"),
                Description=rich_text("Move services to Kubernetes"),
                **{"Date Started": date("2024-01-15"), "Date Completed": date(None)},
            ),
            page(
                "init-2",
                Name=title("Conference Talk"),
                Status=status("Completed"),
                Priority=select("Medium"),
                Description=rich_text("Speak at PyCon"),
                **{"Date Started": date("2023-09-01"), "Date Completed": date("2023-12-01")},
            ),
        ],
        "achievements": [
            page(
                "ach-1",
                Achievement=title("Led API redesign"),
                Description=rich_text("Rebuilt the public API"),
                Category=select("Technical/SWE"),
                Date=date("2024-03-01"),
                **{"Skills Used": multi_select("Python", "API Design")},
            ),
            page(
                "ach-2",
                Achievement=title("Mentored interns"),
                Description=rich_text("Mentored three summer interns"),
                Category=select("Business/Leadership"),
                Date=date("2023-06-10"),
                **{"Skills Used": multi_select("Leadership", "Python")},
            ),
            page(
                "ach-3",
                Achievement=title("Published paper"),
                Description=rich_text("Workshop paper on retrieval"),
                Category=select("Academic"),
                Date=date("2023-11-20"),
                **{"Skills Used": multi_select("Python", "Research")},
            ),
        ],
        "tasks": [
            page(
                "task-1",
                Task=title("Write design doc"),
                Status=status("In Progress"),
                Priority=select("High"),
                Tags=multi_select("writing"),
                Initiative=relation("init-1"),
                **{"Due Date": date("2024-05-01")},
            ),
            page(
                "task-2",
                Task=title("Submit CFP"),
                Status=status("Completed"),
                Priority=select("Low"),
                Tags=multi_select(),
                Initiative=relation("init-2"),
                **{"Due Date": date("2023-08-01")},
            ),
        ],
    }


class StaticDataProvider(DataProvider):
    """In-memory provider that records every query it receives."""

    def __init__(
        self,
        records: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        delays: Optional[Dict[str, float]] = None,
        error: Optional[Exception] = None,
    ):
        self.records = sample_records() if records is None else records
        self.delays = delays or {}
        self.error = error
        self.queries: List[Dict[str, Any]] = []
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True

    def is_configured(self, source_id: str) -> bool:
        return source_id in self.records

    async def fetch_records(self, source_id, filter=None, sort=None, limit=None):
        self.queries.append({"source": source_id, "filter": filter, "sort": sort, "limit": limit})
        if source_id in self.delays:
            await asyncio.sleep(self.delays[source_id])
        if self.error is not None:
            raise self.error
        if source_id not in self.records:
            raise SourceNotConfiguredError(source_id)
        pages = self.records[source_id]
        return pages[:limit] if limit else list(pages)

    async def fetch_record(self, source_id, record_id):
        if self.error is not None:
            raise self.error
        if source_id not in self.records:
            raise SourceNotConfiguredError(source_id)
        for item in self.records[source_id]:
            if item["id"] == record_id:
                return item
        raise RecordNotFoundError(source_id, record_id)


class FakeWriter:
    """Stand-in for ``asyncio.StreamWriter`` capturing written bytes."""

    def __init__(self, error: Optional[Exception] = None):
        self.data = bytearray()
        self.error = error
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.error is not None:
            raise self.error
        self.data.extend(data)

    async def drain(self) -> None:
        pass

    def is_closing(self) -> bool:
        return self.closed

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def messages(self) -> List[Dict[str, Any]]:
        return [json.loads(line) for line in self.data.decode().splitlines() if line]


async def wait_for_messages(writer: FakeWriter, count: int, timeout: float = 2.0) -> List[Dict[str, Any]]:
    """Poll until ``writer`` holds at least ``count`` messages."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while len(writer.messages()) < count:
        if loop.time() > deadline:
            raise AssertionError(f"Expected {count} messages, got {writer.messages()}")
        await asyncio.sleep(0.01)
    return writer.messages()


def request(method: str, params: Optional[Dict[str, Any]] = None, request_id: Any = 1) -> Dict[str, Any]:
    message: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def initialize_params(version: str = "2024-11-05") -> Dict[str, Any]:
    return {
        "protocolVersion": version,
        "capabilities": {"roots": {"listChanged": True}},
        "clientInfo": {"name": "test-client", "version": "0.1.0"},
    }


@pytest.fixture
def provider() -> StaticDataProvider:
    return StaticDataProvider()


@pytest.fixture
def service(provider) -> CareerDataService:
    return CareerDataService(provider)
