"""Registry of live transports with event fan-in and broadcast fan-out."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional
import structlog
from prometheus_client import Gauge

from .base import Transport, TransportEventKind
from ..protocol.codec import InboundMessage
from ..protocol.errors import InternalError, MCPError
from ..protocol.messages import JSONRPCNotification

logger = structlog.get_logger()

active_transports = Gauge("mcp_active_transports", "Registered MCP transports")


class RegistryEventKind(str, Enum):
    MESSAGE = "message"
    ERROR = "error"
    TRANSPORT_CLOSE = "transport:close"


@dataclass
class RegistryEvent:
    """A transport event tagged with the connection it came from."""
    kind: RegistryEventKind
    transport_id: str
    message: Optional[InboundMessage] = None
    error: Optional[MCPError] = None


class TransportRegistry:
    """Owns every live transport by connection id.

    Each transport's own event queue is pumped into one registry queue, so a
    single consumer sees all connections' traffic in per-connection order.
    """

    def __init__(self):
        self._transports: Dict[str, Transport] = {}
        self._pumps: Dict[str, asyncio.Task] = {}
        self._events: "asyncio.Queue[RegistryEvent]" = asyncio.Queue()

    def __len__(self) -> int:
        return len(self._transports)

    def __contains__(self, transport_id: str) -> bool:
        return transport_id in self._transports

    def add_transport(self, transport_id: str, transport: Transport) -> None:
        """Register a transport and start forwarding its events."""
        if transport_id in self._transports:
            raise InternalError(f"Transport with id '{transport_id}' already exists")

        self._transports[transport_id] = transport
        self._pumps[transport_id] = asyncio.create_task(self._pump(transport_id, transport))
        active_transports.inc()
        logger.info("Transport added", transport_id=transport_id, transport=transport.kind)

    def remove_transport(self, transport_id: str) -> None:
        """Detach and forget a transport; unknown ids are ignored."""
        transport = self._transports.pop(transport_id, None)
        if transport is None:
            return

        pump = self._pumps.pop(transport_id, None)
        if pump is not None and pump is not asyncio.current_task() and not pump.done():
            pump.cancel()
        active_transports.dec()
        logger.info("Transport removed", transport_id=transport_id)

    def get_transport(self, transport_id: str) -> Optional[Transport]:
        return self._transports.get(transport_id)

    def transport_ids(self) -> List[str]:
        return list(self._transports)

    def get_active_count(self) -> int:
        """Number of transports currently reporting a live connection."""
        return sum(1 for transport in self._transports.values() if transport.is_connected())

    async def _pump(self, transport_id: str, transport: Transport) -> None:
        async for event in transport.events():
            if event.kind == TransportEventKind.MESSAGE:
                self._events.put_nowait(
                    RegistryEvent(RegistryEventKind.MESSAGE, transport_id, message=event.message)
                )
            elif event.kind == TransportEventKind.ERROR:
                self._events.put_nowait(
                    RegistryEvent(RegistryEventKind.ERROR, transport_id, error=event.error)
                )
            else:
                self.remove_transport(transport_id)
                self._events.put_nowait(RegistryEvent(RegistryEventKind.TRANSPORT_CLOSE, transport_id))

    async def events(self) -> AsyncIterator[RegistryEvent]:
        """Tagged events from every registered transport."""
        while True:
            yield await self._events.get()

    async def broadcast(self, notification: JSONRPCNotification) -> None:
        """Send to every connected transport; individual failures are only logged."""

        async def send_one(transport_id: str, transport: Transport) -> None:
            try:
                await transport.send(notification)
            except Exception as e:
                logger.error(
                    "Failed to broadcast to transport",
                    transport_id=transport_id,
                    error=str(e),
                )

        targets = [
            send_one(transport_id, transport)
            for transport_id, transport in list(self._transports.items())
            if transport.is_connected()
        ]
        if targets:
            await asyncio.gather(*targets, return_exceptions=True)

    async def close_all(self) -> None:
        """Close every transport concurrently, then clear the registry."""
        transports = list(self._transports.values())
        results = await asyncio.gather(
            *(transport.close() for transport in transports), return_exceptions=True
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error("Error closing transport", error=str(result))

        for transport_id in list(self._transports):
            self.remove_transport(transport_id)
        logger.info("All transports closed", count=len(transports))
