"""Tests for tool implementations and the tools/* handlers."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock

from career_mcp.career.service import CareerDataService
from career_mcp.handlers.tools import ToolsCallHandler, ToolsListHandler
from career_mcp.protocol.errors import HandlerRegistrationError, InvalidParamsError, ToolExecutionError
from career_mcp.protocol.messages import JSONRPCRequest
from career_mcp.protocol.session import RequestContext
from career_mcp.providers.base import DataProviderError
from career_mcp.tools import Tool, ToolRegistry, create_career_tools, validate_schema

from conftest import StaticDataProvider

TOOL_NAMES = [
    "get_career_initiatives",
    "get_achievements",
    "get_tasks",
    "search_career_data",
    "get_skill_analysis",
]


class MockTool(Tool):
    """Mock tool for testing."""

    @property
    def name(self) -> str:
        return "mock_tool"

    @property
    def description(self) -> str:
        return "A mock tool for testing"

    @property
    def input_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string"},
                "delay": {"type": "number", "minimum": 0},
            },
            "required": ["message"],
        }

    async def execute(self, arguments: dict) -> dict:
        await asyncio.sleep(arguments.get("delay", 0))
        return {"response": f"Hello {arguments['message']}"}


def registry_for(provider) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in create_career_tools(CareerDataService(provider)):
        registry.register(tool)
    return registry


def call_request(name, arguments=None, request_id=1, **extra) -> JSONRPCRequest:
    params = {"name": name, **extra}
    if arguments is not None:
        params["arguments"] = arguments
    return JSONRPCRequest(id=request_id, method="tools/call", params=params)


def payload(response) -> dict:
    return json.loads(response.result["content"][0]["text"])


class TestSchemaValidation:
    """Test argument validation against input schemas."""

    SCHEMA = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "minLength": 1},
            "limit": {"type": "integer", "minimum": 1, "maximum": 100},
            "kinds": {"type": "array", "items": {"type": "string", "enum": ["a", "b"]}},
            "window": {
                "type": "object",
                "properties": {"start": {"type": "string", "format": "date"}},
            },
        },
        "required": ["query"],
    }

    def test_valid(self):
        """Test a conforming payload has no violations."""
        arguments = {"query": "x", "limit": 5, "kinds": ["a"], "window": {"start": "2024-01-31"}}
        assert validate_schema(arguments, self.SCHEMA) == []

    def test_missing_required(self):
        """Test missing required fields are reported."""
        assert validate_schema({}, self.SCHEMA) == [
            {"field": "query", "type": "missing", "message": "Field required"}
        ]

    def test_type_and_range(self):
        """Test wrong types and out-of-range numbers."""
        violations = validate_schema({"query": 3, "limit": 500}, self.SCHEMA)
        assert {(v["field"], v["type"]) for v in violations} == {("query", "type_error"), ("limit", "maximum")}

    def test_bool_is_not_a_number(self):
        """Test booleans are rejected for numeric fields."""
        violations = validate_schema({"query": "x", "limit": True}, self.SCHEMA)
        assert violations[0]["type"] == "type_error"

    def test_nested_items_and_dates(self):
        """Test array items and nested object properties are checked."""
        violations = validate_schema(
            {"query": "", "kinds": ["a", "c"], "window": {"start": "yesterday"}}, self.SCHEMA
        )
        assert {v["field"] for v in violations} == {"query", "kinds[1]", "window.start"}


class TestBaseTool:
    """Test base tool functionality."""

    @pytest.mark.asyncio
    async def test_tool_call_success(self):
        """Test successful tool call."""
        tool = MockTool(service=None)

        result = await tool.call({"message": "World"})

        assert not result.isError
        assert len(result.content) == 1
        assert result.content[0]["type"] == "text"
        assert json.loads(result.content[0]["text"]) == {"response": "Hello World"}

    @pytest.mark.asyncio
    async def test_tool_call_validation_error(self):
        """Test tool call with invalid input."""
        tool = MockTool(service=None)

        with pytest.raises(InvalidParamsError) as exc_info:
            await tool.call({})
        assert exc_info.value.violations[0]["field"] == "message"

    @pytest.mark.asyncio
    async def test_tool_call_timeout(self):
        """Test slow tools fail with a tool execution error."""
        tool = MockTool(service=None)

        with pytest.raises(ToolExecutionError, match="timed out"):
            await tool.call({"message": "slow", "delay": 1}, timeout=0.05)

    def test_get_definition(self):
        """Test tool definition generation."""
        definition = MockTool(service=None).get_definition()

        assert definition.name == "mock_tool"
        assert definition.description == "A mock tool for testing"
        assert definition.inputSchema["required"] == ["message"]


class TestToolRegistry:
    """Test tool registry functionality."""

    def test_career_tools_registered(self):
        """Test the fixed tool set in listing order."""
        registry = registry_for(StaticDataProvider())
        assert [tool.name for tool in registry.list_tools()] == TOOL_NAMES

    def test_duplicate_tool(self):
        """Test two tools cannot share a name."""
        registry = ToolRegistry()
        registry.register(MockTool(service=None))

        with pytest.raises(HandlerRegistrationError):
            registry.register(MockTool(service=None))

    def test_get_unknown_tool(self):
        """Test lookup of an unregistered tool."""
        assert ToolRegistry().get_tool("nope") is None


class TestToolsHandlers:
    """Test tools/list and tools/call."""

    @pytest.mark.asyncio
    async def test_tools_list(self):
        """Test every tool is listed with its schema."""
        handler = ToolsListHandler(registry_for(StaticDataProvider()))
        response = await handler.handle(JSONRPCRequest(id=1, method="tools/list"))

        tools = response.result["tools"]
        assert [tool["name"] for tool in tools] == TOOL_NAMES
        assert all(tool["inputSchema"]["type"] == "object" for tool in tools)
        assert "nextCursor" not in response.result

    @pytest.mark.asyncio
    async def test_tools_list_pagination(self):
        """Test a small page size yields a cursor chain covering every tool."""
        handler = ToolsListHandler(registry_for(StaticDataProvider()), page_size=2)

        names, cursor, pages = [], None, 0
        while True:
            params = {"cursor": cursor} if cursor else {}
            response = await handler.handle(JSONRPCRequest(id=1, method="tools/list", params=params))
            names += [tool["name"] for tool in response.result["tools"]]
            pages += 1
            cursor = response.result.get("nextCursor")
            if cursor is None:
                break

        assert names == TOOL_NAMES
        assert pages == 3

    @pytest.mark.asyncio
    async def test_tools_list_bad_cursor(self):
        """Test an unrecognized cursor is an invalid params error."""
        handler = ToolsListHandler(registry_for(StaticDataProvider()))
        response = await handler.handle(JSONRPCRequest(id=1, method="tools/list", params={"cursor": "garbage!"}))
        assert response.error.code == -32602

    @pytest.mark.asyncio
    async def test_get_initiatives(self):
        """Test initiatives are filtered and formatted."""
        provider = StaticDataProvider()
        handler = ToolsCallHandler(registry_for(provider))

        response = await handler.handle(
            call_request("get_career_initiatives", {"status": "Active", "priority": "High", "limit": 5})
        )

        data = payload(response)
        assert data["total"] == 2
        assert data["initiatives"][0]["name"] == "Platform Migration"
        assert data["initiatives"][0]["status"] == "Active"
        assert provider.queries[0]["filter"] == {
            "and": [
                {"property": "Status", "status": {"equals": "Active"}},
                {"property": "Priority", "select": {"equals": "High"}},
            ]
        }
        assert provider.queries[0]["limit"] == 5

    @pytest.mark.asyncio
    async def test_get_achievements_filters(self):
        """Test skills and date range become Notion filters."""
        provider = StaticDataProvider()
        handler = ToolsCallHandler(registry_for(provider))

        response = await handler.handle(
            call_request(
                "get_achievements",
                {"skills": ["Python"], "date_range": {"start": "2023-01-01", "end": "2023-12-31"}},
            )
        )

        assert payload(response)["achievements"][0]["skills_used"] == ["Python", "API Design"]
        conditions = provider.queries[0]["filter"]["and"]
        assert {"property": "Skills Used", "multi_select": {"contains": "Python"}} in conditions
        assert {"property": "Date", "date": {"on_or_after": "2023-01-01"}} in conditions
        assert {"property": "Date", "date": {"on_or_before": "2023-12-31"}} in conditions
        assert provider.queries[0]["limit"] == 20

    @pytest.mark.asyncio
    async def test_get_tasks(self):
        """Test task relation filter and formatting."""
        provider = StaticDataProvider()
        handler = ToolsCallHandler(registry_for(provider))

        response = await handler.handle(call_request("get_tasks", {"initiative_id": "init-1"}))

        assert payload(response)["tasks"][0]["initiative_ids"] == ["init-1"]
        assert provider.queries[0]["filter"] == {
            "property": "Initiative",
            "relation": {"contains": "init-1"},
        }

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        """Test an unknown tool name is method-not-found."""
        handler = ToolsCallHandler(registry_for(StaticDataProvider()))
        response = await handler.handle(call_request("delete_everything", {}, request_id=3))

        assert response.id == 3
        assert response.error.code == -32601
        assert response.error.message == "Unknown tool: delete_everything"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        """Test schema violations become invalid params with violations."""
        handler = ToolsCallHandler(registry_for(StaticDataProvider()))

        response = await handler.handle(call_request("get_career_initiatives", {"status": "Paused", "limit": 0}))

        assert response.error.code == -32602
        fields = {violation["field"] for violation in response.error.data["violations"]}
        assert fields == {"status", "limit"}

    @pytest.mark.asyncio
    async def test_search_requires_query(self):
        """Test required tool arguments."""
        handler = ToolsCallHandler(registry_for(StaticDataProvider()))
        response = await handler.handle(call_request("search_career_data", {}))
        assert response.error.code == -32602

    @pytest.mark.asyncio
    async def test_provider_failure(self):
        """Test downstream failures are tool execution errors."""
        provider = StaticDataProvider(error=DataProviderError("Notion API error rate_limited"))
        handler = ToolsCallHandler(registry_for(provider))

        response = await handler.handle(call_request("get_tasks", {}))

        assert response.error.code == -32002
        assert "rate_limited" in response.error.message

    @pytest.mark.asyncio
    async def test_unconfigured_source(self):
        """Test a missing database is an internal error naming it."""
        provider = StaticDataProvider(records={"tasks": []})
        handler = ToolsCallHandler(registry_for(provider))

        response = await handler.handle(call_request("get_achievements", {}))

        assert response.error.code == -32603
        assert response.error.message == "Notion achievements database ID not configured"

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test the configured tool timeout."""
        provider = StaticDataProvider(delays={"tasks": 1.0})
        handler = ToolsCallHandler(registry_for(provider), timeout=0.05)

        response = await handler.handle(call_request("get_tasks", {}))

        assert response.error.code == -32002
        assert "timed out" in response.error.message

    @pytest.mark.asyncio
    async def test_gap_analysis_requires_target_skills(self):
        """Test gap analysis without target skills."""
        handler = ToolsCallHandler(registry_for(StaticDataProvider()))
        response = await handler.handle(call_request("get_skill_analysis", {"analysis_type": "gaps"}))

        assert response.error.code == -32602
        assert response.error.data["violations"][0]["field"] == "target_skills"

    @pytest.mark.asyncio
    async def test_progress_notifications(self):
        """Test a progress token produces start and completion notifications."""
        notify = AsyncMock()
        context = RequestContext(transport_id="t", notify=notify)
        handler = ToolsCallHandler(registry_for(StaticDataProvider()))

        response = await handler.handle(call_request("get_tasks", {}, progressToken="tok"), context)

        assert response.error is None
        sent = [call.args[0] for call in notify.await_args_list]
        assert [n.method for n in sent] == ["notifications/progress", "notifications/progress"]
        assert [n.params["progress"] for n in sent] == [0, 1]
        assert all(n.params["progressToken"] == "tok" for n in sent)

    @pytest.mark.asyncio
    async def test_no_progress_without_token(self):
        """Test no notifications are sent without a progress token."""
        notify = AsyncMock()
        handler = ToolsCallHandler(registry_for(StaticDataProvider()))

        await handler.handle(call_request("get_tasks", {}), RequestContext(notify=notify))

        notify.assert_not_awaited()
