"""JSON-RPC 2.0 protocol implementation for MCP."""

from .codec import decode_message, encode_message, parse_message
from .errors import ErrorCode, MCPError
from .handler import BaseHandler, HandlerRegistry
from .messages import (
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    MCPMethod,
)
from .session import HandshakeState, RequestContext, SessionState

__all__ = [
    "BaseHandler",
    "HandlerRegistry",
    "ErrorCode",
    "MCPError",
    "JSONRPCNotification",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "MCPMethod",
    "HandshakeState",
    "RequestContext",
    "SessionState",
    "decode_message",
    "encode_message",
    "parse_message",
]
