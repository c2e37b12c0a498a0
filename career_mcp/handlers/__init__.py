"""MCP method handlers."""

from .lifecycle import InitializedHandler, InitializeHandler, PingHandler, SetLevelHandler
from .resources import (
    ResourcesListHandler,
    ResourcesReadHandler,
    ResourcesSubscribeHandler,
    ResourcesUnsubscribeHandler,
    ResourceTemplatesListHandler,
)
from .tools import ToolsCallHandler, ToolsListHandler

__all__ = [
    "InitializeHandler",
    "InitializedHandler",
    "PingHandler",
    "SetLevelHandler",
    "ResourcesListHandler",
    "ResourceTemplatesListHandler",
    "ResourcesReadHandler",
    "ResourcesSubscribeHandler",
    "ResourcesUnsubscribeHandler",
    "ToolsCallHandler",
    "ToolsListHandler",
]
