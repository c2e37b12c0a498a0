"""Base tool interface and registry."""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional
import structlog
from prometheus_client import Counter, Histogram

from ..career.service import CareerDataService
from ..protocol.errors import (
    HandlerRegistrationError,
    InternalError,
    InvalidParamsError,
    MCPError,
    ToolExecutionError,
)
from ..protocol.messages import ToolCallResult, ToolDefinition
from ..providers.base import DataProviderError, SourceNotConfiguredError

logger = structlog.get_logger()

# Metrics
tool_calls = Counter("mcp_tool_calls_total", "Total tool calls", ["tool", "status"])
tool_duration = Histogram("mcp_tool_duration_seconds", "Tool execution duration", ["tool"])

_TYPE_MAPPING = {
    "string": str,
    "integer": int,
    "number": (int, float),
    "boolean": bool,
    "array": list,
    "object": dict,
    "null": type(None),
}


def check_type(value: Any, expected_type: str) -> bool:
    """Check if value matches expected JSON schema type."""
    expected_python_type = _TYPE_MAPPING.get(expected_type)
    if expected_python_type is None:
        return True  # Unknown type, skip validation

    # bool is an int subclass but never a JSON number
    if expected_type in ("integer", "number") and isinstance(value, bool):
        return False
    return isinstance(value, expected_python_type)


def _is_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_schema(value: Any, schema: Dict[str, Any], path: str = "") -> List[Dict[str, Any]]:
    """Validate ``value`` against a JSON schema subset and list every violation.

    Supported keywords: type, required, properties, items, enum, minimum,
    maximum, minLength and the ``date`` format.
    """
    field = path or "arguments"
    expected_type = schema.get("type")
    if expected_type and not check_type(value, expected_type):
        return [{
            "field": field,
            "type": "type_error",
            "message": f"Expected {expected_type}, got {type(value).__name__}",
        }]

    violations: List[Dict[str, Any]] = []

    if "enum" in schema and value not in schema["enum"]:
        violations.append({
            "field": field,
            "type": "enum",
            "message": f"Must be one of: {', '.join(str(option) for option in schema['enum'])}",
        })

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if "minimum" in schema and value < schema["minimum"]:
            violations.append({
                "field": field,
                "type": "minimum",
                "message": f"Must be greater than or equal to {schema['minimum']}",
            })
        if "maximum" in schema and value > schema["maximum"]:
            violations.append({
                "field": field,
                "type": "maximum",
                "message": f"Must be less than or equal to {schema['maximum']}",
            })

    if isinstance(value, str):
        if "minLength" in schema and len(value) < schema["minLength"]:
            violations.append({
                "field": field,
                "type": "min_length",
                "message": f"Must be at least {schema['minLength']} characters long",
            })
        if schema.get("format") == "date" and not _is_date(value):
            violations.append({
                "field": field,
                "type": "format",
                "message": "Must be a date in YYYY-MM-DD format",
            })

    if isinstance(value, list) and "items" in schema:
        for index, item in enumerate(value):
            violations += validate_schema(item, schema["items"], f"{field}[{index}]")

    if isinstance(value, dict):
        prefix = f"{path}." if path else ""
        for name in schema.get("required", []):
            if name not in value:
                violations.append({
                    "field": f"{prefix}{name}",
                    "type": "missing",
                    "message": "Field required",
                })
        for name, prop_schema in schema.get("properties", {}).items():
            if name in value:
                violations += validate_schema(value[name], prop_schema, f"{prefix}{name}")

    return violations


class Tool(ABC):
    """Abstract base class for MCP tools backed by the career data service."""

    def __init__(self, service: CareerDataService):
        self.service = service

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Tool description."""
        pass

    @property
    @abstractmethod
    def input_schema(self) -> Dict[str, Any]:
        """JSON schema for tool input validation."""
        pass

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Execute the tool with validated arguments."""
        pass

    def validate_arguments(self, arguments: Dict[str, Any]) -> None:
        """Validate input against schema."""
        violations = validate_schema(arguments, self.input_schema)
        if violations:
            logger.warning("Tool input validation failed", tool=self.name, violations=violations)
            raise InvalidParamsError(f"Invalid arguments for tool '{self.name}'", violations)

    async def call(self, arguments: Optional[Dict[str, Any]] = None, timeout: float = 30.0) -> ToolCallResult:
        """Call the tool with validation and error handling."""
        arguments = arguments or {}
        self.validate_arguments(arguments)

        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(self.execute(arguments), timeout=timeout)

        except asyncio.TimeoutError:
            tool_calls.labels(tool=self.name, status="timeout").inc()
            logger.error("Tool execution timed out", tool=self.name, timeout=timeout)
            raise ToolExecutionError(f"Tool {self.name} timed out after {timeout}s")

        except SourceNotConfiguredError as e:
            tool_calls.labels(tool=self.name, status="error").inc()
            logger.error("Tool data source not configured", tool=self.name, source=e.source_id)
            raise InternalError(str(e))

        except DataProviderError as e:
            tool_calls.labels(tool=self.name, status="error").inc()
            logger.error("Tool execution failed", tool=self.name, error=str(e))
            raise ToolExecutionError(f"Tool {self.name} execution failed: {e}")

        except MCPError:
            tool_calls.labels(tool=self.name, status="error").inc()
            raise

        finally:
            tool_duration.labels(tool=self.name).observe(time.perf_counter() - started)

        tool_calls.labels(tool=self.name, status="success").inc()
        logger.info("Tool executed successfully", tool=self.name, arguments=arguments)

        return ToolCallResult(
            content=[{
                "type": "text",
                "text": json.dumps(result, indent=2, default=str),
            }],
            isError=False,
        )

    def get_definition(self) -> ToolDefinition:
        """Get tool definition for MCP."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )


class ToolRegistry:
    """Registry for managing tools."""

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, tool: Tool) -> None:
        """Register a tool instance; names are unique."""
        if tool.name in self._tools:
            raise HandlerRegistrationError(f"Tool '{tool.name}' is already registered")

        self._tools[tool.name] = tool
        logger.debug("Tool registered", tool=tool.name)

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get a tool instance."""
        return self._tools.get(name)

    def list_tools(self) -> List[ToolDefinition]:
        """List all available tools in registration order."""
        return [tool.get_definition() for tool in self._tools.values()]
