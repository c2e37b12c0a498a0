"""Transport layer abstraction for MCP communication."""

from .base import Transport, TransportEvent, TransportEventKind, TransportState
from .registry import RegistryEvent, RegistryEventKind, TransportRegistry
from .stdio import StdioTransport
from .websocket import WebSocketTransport

__all__ = [
    "Transport",
    "TransportEvent",
    "TransportEventKind",
    "TransportState",
    "TransportRegistry",
    "RegistryEvent",
    "RegistryEventKind",
    "StdioTransport",
    "WebSocketTransport",
]
