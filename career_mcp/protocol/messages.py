"""MCP message types and JSON-RPC 2.0 protocol definitions."""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Set, Union
from pydantic import BaseModel, ConfigDict, Field

from .errors import MCPError

JSONRPC_VERSION = "2.0"

RequestId = Union[str, int, float]


class JSONRPCErrorObject(BaseModel):
    """JSON-RPC 2.0 error object."""
    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCMessage(BaseModel):
    """Base JSON-RPC message.

    The version is not pattern-checked here: the codec and the handler
    pipeline report a wrong version as an invalid request.
    """
    jsonrpc: str = JSONRPC_VERSION


class JSONRPCNotification(JSONRPCMessage):
    """JSON-RPC 2.0 notification message (no id, no response)."""
    method: str
    params: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        return message


class JSONRPCRequest(JSONRPCNotification):
    """JSON-RPC 2.0 request message."""
    id: Optional[RequestId] = None


class JSONRPCResponse(JSONRPCMessage):
    """JSON-RPC 2.0 response message."""
    id: Optional[RequestId] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[JSONRPCErrorObject] = None

    def model_post_init(self, __context: Any) -> None:
        """Validate that either result or error is present, but not both."""
        if self.result is None and self.error is None:
            raise ValueError("Either 'result' or 'error' must be present")
        if self.result is not None and self.error is not None:
            raise ValueError("Both 'result' and 'error' cannot be present")

    @classmethod
    def success(cls, request_id: Optional[RequestId], result: Dict[str, Any]) -> "JSONRPCResponse":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: Optional[RequestId], error: MCPError) -> "JSONRPCResponse":
        return cls(id=request_id, error=JSONRPCErrorObject(**error.to_dict()))

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_wire(self) -> Dict[str, Any]:
        """Wire shape; ``id`` is always present, even when null."""
        message: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            message["error"] = self.error.model_dump(exclude_none=True)
        else:
            message["result"] = self.result
        return message


class MCPMethod(str, Enum):
    """Method names this server binds handlers to."""
    # Lifecycle
    INITIALIZE = "initialize"
    INITIALIZED = "initialized"
    NOTIFICATIONS_INITIALIZED = "notifications/initialized"
    PING = "ping"

    # Tools
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"

    # Resources
    RESOURCES_LIST = "resources/list"
    RESOURCES_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_READ = "resources/read"
    RESOURCES_SUBSCRIBE = "resources/subscribe"
    RESOURCES_UNSUBSCRIBE = "resources/unsubscribe"

    # Logging
    LOGGING_SET_LEVEL = "logging/setLevel"


class MCPNotificationMethod(str, Enum):
    """Server-to-client notification methods."""
    PROGRESS = "notifications/progress"
    MESSAGE = "notifications/message"
    RESOURCES_UPDATED = "notifications/resources/updated"
    RESOURCES_LIST_CHANGED = "notifications/resources/list_changed"
    TOOLS_LIST_CHANGED = "notifications/tools/list_changed"


LoggingLevel = Literal[
    "debug", "info", "notice", "warning", "error", "critical", "alert", "emergency"
]


class MCPParams(BaseModel):
    """Base for method parameter models; unknown fields are tolerated."""
    model_config = ConfigDict(extra="allow")


# Standard MCP schemas
class ToolDefinition(BaseModel):
    """Tool definition schema."""
    name: str
    description: str
    inputSchema: Dict[str, Any]


class ResourceDefinition(BaseModel):
    """Resource definition schema."""
    uri: str
    name: str
    description: Optional[str] = None
    mimeType: Optional[str] = None


class ResourceTemplateDefinition(BaseModel):
    """Resource template schema."""
    uriTemplate: str
    name: str
    description: Optional[str] = None
    mimeType: Optional[str] = None


class ResourceContents(BaseModel):
    uri: str
    mimeType: Optional[str] = None
    text: Optional[str] = None


class _Capabilities(BaseModel):
    model_config = ConfigDict(extra="allow")

    def flags(self) -> Set[str]:
        """Named feature flags present in this capability set.

        A top-level capability contributes its own name, and every truthy
        sub-option contributes ``"<capability>.<option>"``.
        """
        present: Set[str] = set()
        for name, value in self.model_dump(exclude_none=True).items():
            present.add(name)
            if isinstance(value, dict):
                present.update(f"{name}.{option}" for option, enabled in value.items() if enabled)
        return present


class ServerCapabilities(_Capabilities):
    """Server capabilities schema."""
    experimental: Optional[Dict[str, Any]] = None
    logging: Optional[Dict[str, Any]] = None
    prompts: Optional[Dict[str, Any]] = None
    resources: Optional[Dict[str, Any]] = None
    tools: Optional[Dict[str, Any]] = None


class ClientCapabilities(_Capabilities):
    """Client capabilities schema."""
    experimental: Optional[Dict[str, Any]] = None
    roots: Optional[Dict[str, Any]] = None
    sampling: Optional[Dict[str, Any]] = None


class Implementation(BaseModel):
    name: str
    version: str


class InitializeParams(MCPParams):
    """Initialize request parameters."""
    protocolVersion: str = Field(min_length=1)
    capabilities: ClientCapabilities
    clientInfo: Implementation


class InitializeResult(BaseModel):
    """Initialize response result."""
    protocolVersion: str
    capabilities: ServerCapabilities
    serverInfo: Implementation
    instructions: Optional[str] = None


class PaginatedParams(MCPParams):
    cursor: Optional[str] = None


class ResourceUriParams(MCPParams):
    uri: str = Field(min_length=1)


class SetLevelParams(MCPParams):
    level: LoggingLevel


class ToolCallParams(MCPParams):
    """Tool call request parameters."""
    name: str = Field(min_length=1)
    arguments: Optional[Dict[str, Any]] = None
    progressToken: Optional[RequestId] = None


class ToolCallResult(BaseModel):
    """Tool call response result."""
    content: List[Dict[str, Any]]
    isError: bool = False


class ProgressParams(BaseModel):
    """Progress notification parameters."""
    progressToken: RequestId
    progress: float
    total: Optional[float] = None


def make_notification(method: Union[str, MCPNotificationMethod], params: Optional[Dict[str, Any]] = None) -> JSONRPCNotification:
    if isinstance(method, Enum):
        method = method.value
    return JSONRPCNotification(method=method, params=params)
