"""Handshake, liveness and logging-level handlers."""

import logging
from typing import Any, Dict, Optional

from ..protocol.errors import InitializationFailedError
from ..protocol.handler import BaseHandler
from ..protocol.messages import (
    Implementation,
    InitializeParams,
    InitializeResult,
    MCPMethod,
    ServerCapabilities,
    SetLevelParams,
)
from ..protocol.session import SUPPORTED_PROTOCOL_VERSIONS, HandshakeState, RequestContext

# MCP uses syslog severities; stdlib logging has fewer levels.
LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


def default_capabilities() -> ServerCapabilities:
    """Fixed server declaration, independent of what the client offers."""
    return ServerCapabilities(
        tools={"listChanged": True},
        resources={"subscribe": True, "listChanged": True},
        logging={},
    )


class InitializeHandler(BaseHandler):
    """Negotiates the protocol version and records the client's session."""

    method = MCPMethod.INITIALIZE
    params_model = InitializeParams

    def __init__(
        self,
        server_info: Implementation,
        capabilities: Optional[ServerCapabilities] = None,
        instructions: Optional[str] = None,
    ):
        super().__init__()
        self.server_info = server_info
        self.capabilities = capabilities or default_capabilities()
        self.instructions = instructions

    async def execute(self, params: InitializeParams, context: RequestContext) -> Dict[str, Any]:
        session = context.session
        if session.state != HandshakeState.UNINITIALIZED:
            raise InitializationFailedError(
                "Server already initialized", {"state": session.state.value}
            )

        if params.protocolVersion not in SUPPORTED_PROTOCOL_VERSIONS:
            raise InitializationFailedError(
                f"Unsupported protocol version: {params.protocolVersion}. "
                f"Supported versions: {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}",
                {"supportedVersions": list(SUPPORTED_PROTOCOL_VERSIONS)},
            )

        session.begin(params.protocolVersion, params.clientInfo, params.capabilities, self.capabilities)
        self.logger.info(
            "Client initializing",
            transport_id=context.transport_id,
            client_name=params.clientInfo.name,
            client_version=params.clientInfo.version,
            protocol_version=params.protocolVersion,
            client_capabilities=sorted(params.capabilities.flags()),
        )

        result = InitializeResult(
            protocolVersion=params.protocolVersion,
            capabilities=self.capabilities,
            serverInfo=self.server_info,
            instructions=self.instructions,
        )
        return result.model_dump(exclude_none=True)


class InitializedHandler(BaseHandler):
    """Completes the handshake; bound to either spelling of the method."""

    method = MCPMethod.INITIALIZED

    def __init__(self, method: MCPMethod = MCPMethod.INITIALIZED):
        self.method = method
        super().__init__()

    async def execute(self, params: Dict[str, Any], context: RequestContext) -> Dict[str, Any]:
        if context.session.confirm():
            self.logger.info("Client initialization complete", transport_id=context.transport_id)
        else:
            self.logger.warning(
                "Unexpected initialized notification",
                transport_id=context.transport_id,
                state=context.session.state.value,
            )
        return {}


class PingHandler(BaseHandler):
    method = MCPMethod.PING

    async def execute(self, params: Dict[str, Any], context: RequestContext) -> Dict[str, Any]:
        return {}


class SetLevelHandler(BaseHandler):
    """Adjusts the process log level at runtime."""

    method = MCPMethod.LOGGING_SET_LEVEL
    params_model = SetLevelParams

    async def execute(self, params: SetLevelParams, context: RequestContext) -> Dict[str, Any]:
        context.session.log_level = params.level
        logging.getLogger().setLevel(LOG_LEVELS[params.level])
        self.logger.info("Log level changed", level=params.level, transport_id=context.transport_id)
        return {}
