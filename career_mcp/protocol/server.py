"""MCP server implementation."""

import asyncio
import time
import uuid
from typing import Any, Dict, Optional, Set
import structlog
from prometheus_client import start_http_server
from websockets.asyncio.server import serve

from .codec import InboundMessage, OutboundMessage
from .errors import MCPError, TransportError
from .handler import HandlerRegistry
from .messages import (
    Implementation,
    JSONRPCRequest,
    MCPMethod,
    MCPNotificationMethod,
    make_notification,
)
from .session import RequestContext, SessionState
from ..career.service import CareerDataService
from ..config import ServerConfig
from ..handlers import (
    InitializedHandler,
    InitializeHandler,
    PingHandler,
    ResourcesListHandler,
    ResourcesReadHandler,
    ResourcesSubscribeHandler,
    ResourcesUnsubscribeHandler,
    ResourceTemplatesListHandler,
    SetLevelHandler,
    ToolsCallHandler,
    ToolsListHandler,
)
from ..handlers.lifecycle import default_capabilities
from ..handlers.resources import RESOURCES
from ..providers.base import DataProvider
from ..providers.notion import NotionDataProvider
from ..tools import ToolRegistry, create_career_tools
from ..transport import (
    RegistryEventKind,
    StdioTransport,
    Transport,
    TransportRegistry,
    TransportState,
    WebSocketTransport,
)

logger = structlog.get_logger()


class MCPServer:
    """Career intelligence MCP server over any number of connections."""

    def __init__(self, config: Optional[ServerConfig] = None, provider: Optional[DataProvider] = None):
        self.config = config or ServerConfig()
        self.provider = provider or NotionDataProvider(self.config.notion)
        self.service = CareerDataService(self.provider)

        self.transports = TransportRegistry()
        self.handlers = HandlerRegistry(
            require_initialization=self.config.require_initialization,
            debug=self.config.debug,
        )
        self.tool_registry = ToolRegistry()
        self.sessions: Dict[str, SessionState] = {}

        self._running = False
        self._started_at: Optional[float] = None
        self._dispatch_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._ws_server = None
        self._metrics_started = False

        self._server_info = Implementation(
            name=self.config.server_name,
            version=self.config.server_version,
        )
        self._capabilities = default_capabilities()

        for tool in create_career_tools(self.service):
            self.tool_registry.register(tool)

        # Setup request handlers
        self._setup_handlers()

    @property
    def running(self) -> bool:
        return self._running

    def _build_instructions(self) -> str:
        lines = [
            "# MCP Career Intelligence Server",
            "",
            "Career development initiatives, achievements and tasks served from Notion.",
            "",
            "## Available Tools:",
        ]
        lines += [f"- **{tool.name}**: {tool.description}" for tool in self.tool_registry.list_tools()]
        lines += ["", "## Available Resources:"]
        lines += [f"- **{resource.uri}**: {resource.description}" for resource in RESOURCES]
        return "\n".join(lines)

    def _setup_handlers(self) -> None:
        """Bind every supported method to its handler."""
        page_size = self.config.page_size
        handlers = [
            # Lifecycle
            InitializeHandler(
                self._server_info,
                self._capabilities,
                self.config.instructions or self._build_instructions(),
            ),
            InitializedHandler(MCPMethod.INITIALIZED),
            InitializedHandler(MCPMethod.NOTIFICATIONS_INITIALIZED),
            PingHandler(),
            SetLevelHandler(),
            # Tools
            ToolsListHandler(self.tool_registry, page_size),
            ToolsCallHandler(self.tool_registry, self.config.tool_timeout),
            # Resources
            ResourcesListHandler(page_size),
            ResourceTemplatesListHandler(page_size),
            ResourcesReadHandler(self.service),
            ResourcesSubscribeHandler(),
            ResourcesUnsubscribeHandler(),
        ]
        for handler in handlers:
            self.handlers.register(handler)

    async def start(self) -> None:
        """Start the MCP server."""
        if self._running:
            return

        try:
            await self.provider.initialize()

            if self.config.metrics_port and not self._metrics_started:
                start_http_server(self.config.metrics_port)
                self._metrics_started = True
                logger.info("Metrics server started", port=self.config.metrics_port)

            self._dispatch_task = asyncio.create_task(self._dispatch_loop())
            self._running = True
            self._started_at = time.monotonic()
            logger.info(
                "MCP server started",
                server_info=self._server_info.model_dump(),
                methods=self.handlers.get_registered_methods(),
            )

        except Exception as e:
            logger.error("Failed to start MCP server", error=str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the MCP server."""
        self._running = False

        if self._ws_server is not None:
            self._ws_server.close()
            await self._ws_server.wait_closed()
            self._ws_server = None

        if self._dispatch_task is not None:
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass
            self._dispatch_task = None

        # In-flight requests are bounded by the tool timeout.
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        await self.transports.close_all()
        self.sessions.clear()

        try:
            await self.provider.close()
        except Exception as e:
            logger.error("Error closing data provider", error=str(e))

        logger.info("MCP server stopped")

    async def attach(self, transport: Transport, transport_id: Optional[str] = None) -> str:
        """Open a transport and route its traffic through this server."""
        transport_id = transport_id or str(uuid.uuid4())
        if transport.state == TransportState.CONNECTING:
            await transport.start()

        self.sessions[transport_id] = SessionState()
        self.transports.add_transport(transport_id, transport)
        return transport_id

    async def _dispatch_loop(self) -> None:
        """Single consumer of every connection's events."""
        async for event in self.transports.events():
            if event.kind == RegistryEventKind.MESSAGE:
                # One task per message so slow tools never block other requests.
                task = asyncio.create_task(self._process_message(event.transport_id, event.message))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

            elif event.kind == RegistryEventKind.ERROR:
                self._report_error(event.transport_id, event.error)

            else:
                self.sessions.pop(event.transport_id, None)
                logger.info("Connection closed", transport_id=event.transport_id)

    def _context(self, transport_id: str) -> RequestContext:
        # Requests still queued after a disconnect run against a detached session.
        session = self.sessions.get(transport_id) or SessionState()

        async def notify(notification) -> None:
            await self._send(transport_id, notification)

        return RequestContext(
            transport_id=transport_id,
            session=session,
            debug=self.config.debug,
            notify=notify,
        )

    async def _process_message(self, transport_id: str, message: InboundMessage) -> None:
        context = self._context(transport_id)
        if isinstance(message, JSONRPCRequest):
            response = await self.handlers.handle_request(message, context)
            await self._send(transport_id, response)
        else:
            await self.handlers.handle_notification(message, context)

    def _report_error(self, transport_id: str, error: MCPError) -> None:
        """Log an undecodable message; it has no id to answer."""
        logger.warning(
            "Invalid message received",
            transport_id=transport_id,
            error_code=int(error.code),
            error=error.message,
        )

    async def _send(self, transport_id: str, message: OutboundMessage) -> None:
        transport = self.transports.get_transport(transport_id)
        if transport is None:
            logger.warning("Dropping message for closed connection", transport_id=transport_id)
            return

        try:
            await transport.send(message)
        except TransportError as e:
            logger.error("Failed to send message", transport_id=transport_id, error=e.message)

    async def broadcast(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a notification to every connected client."""
        await self.transports.broadcast(make_notification(method, params))

    async def notify_resource_updated(self, uri: str) -> int:
        """Tell every subscriber of ``uri`` that it changed; returns the count."""
        notification = make_notification(MCPNotificationMethod.RESOURCES_UPDATED, {"uri": uri})
        subscribers = [
            transport_id
            for transport_id, session in list(self.sessions.items())
            if uri in session.subscriptions
        ]
        for transport_id in subscribers:
            await self._send(transport_id, notification)
        return len(subscribers)

    async def serve_stdio(self) -> None:
        """Serve one client over the process stdin/stdout until EOF."""
        transport = StdioTransport(config=self.config.transport.model_dump())
        await self.attach(transport, "stdio")
        await transport.wait_closed()

    async def serve_websocket(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Accept WebSocket clients until the server is stopped."""
        transport_config = self.config.transport
        host = host or transport_config.host
        port = port or transport_config.port

        async def handle_connection(websocket) -> None:
            transport = WebSocketTransport(websocket, transport_config.model_dump())
            transport_id = await self.attach(transport)
            logger.info(
                "WebSocket client connected",
                transport_id=transport_id,
                remote_address=transport.remote_address,
            )
            await transport.wait_closed()

        self._ws_server = await serve(
            handle_connection,
            host,
            port,
            max_size=transport_config.max_message_size,
            ping_interval=transport_config.ping_interval,
            ping_timeout=transport_config.ping_timeout,
        )
        logger.info("WebSocket server listening", host=host, port=port)
        await self._ws_server.wait_closed()

    async def run_forever(self) -> None:
        """Run the configured transport until it ends."""
        await self.start()
        try:
            if self.config.transport.type == "websocket":
                await self.serve_websocket()
            else:
                await self.serve_stdio()
        finally:
            await self.stop()

    def get_status(self) -> Dict[str, Any]:
        """Get server status information."""
        return {
            "running": self._running,
            "server_info": self._server_info.model_dump(),
            "uptime": time.monotonic() - self._started_at if self._started_at else 0.0,
            "connections": len(self.transports),
            "active_connections": self.transports.get_active_count(),
            "registered_methods": self.handlers.get_registered_methods(),
            "tools": [tool.name for tool in self.tool_registry.list_tools()],
            "in_flight_requests": len(self._tasks),
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()
