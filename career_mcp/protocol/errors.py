"""Typed MCP errors and their JSON-RPC 2.0 error codes."""

from enum import IntEnum
from typing import Any, Dict, List, Optional


class ErrorCode(IntEnum):
    """JSON-RPC 2.0 and MCP error codes."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # MCP-specific error codes
    INITIALIZATION_FAILED = -32000
    RESOURCE_NOT_FOUND = -32001
    TOOL_EXECUTION_ERROR = -32002
    TRANSPORT_ERROR = -32005


class MCPError(Exception):
    """Base exception for every error that may be reported on the wire."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        data: Optional[Any] = None,
        code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.data = data
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        """Render as a JSON-RPC error object."""
        error: Dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={int(self.code)}, message={self.message!r})"


class ParseError(MCPError):
    """Payload is not a well-formed message."""
    code = ErrorCode.PARSE_ERROR


class InvalidRequestError(MCPError):
    """Envelope is well-formed JSON but not a valid JSON-RPC request."""
    code = ErrorCode.INVALID_REQUEST


class MethodNotFoundError(MCPError):
    code = ErrorCode.METHOD_NOT_FOUND


class InvalidParamsError(MCPError):
    """Raised when method parameters fail validation."""
    code = ErrorCode.INVALID_PARAMS

    def __init__(self, message: str, violations: Optional[List[Dict[str, Any]]] = None):
        self.violations = violations or []
        super().__init__(message, {"violations": self.violations} if self.violations else None)


class InternalError(MCPError):
    code = ErrorCode.INTERNAL_ERROR


class InitializationFailedError(MCPError):
    """Unsupported protocol version or violated handshake precondition."""
    code = ErrorCode.INITIALIZATION_FAILED


class ResourceNotFoundError(MCPError):
    code = ErrorCode.RESOURCE_NOT_FOUND


class ToolExecutionError(MCPError):
    """Downstream execution of a tool failed."""
    code = ErrorCode.TOOL_EXECUTION_ERROR


class TransportError(MCPError):
    """Send or receive on a channel that is not open or has failed."""
    code = ErrorCode.TRANSPORT_ERROR


class HandlerRegistrationError(Exception):
    """Raised at startup when a method or tool name is bound twice."""
    pass
