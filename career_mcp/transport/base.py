"""Base transport interface for MCP communication."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional
import structlog

from ..protocol.codec import InboundMessage, OutboundMessage, decode_message, encode_message
from ..protocol.errors import MCPError, TransportError

logger = structlog.get_logger()


class TransportState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class TransportEventKind(str, Enum):
    MESSAGE = "message"
    ERROR = "error"
    CLOSE = "close"


@dataclass
class TransportEvent:
    """One item of a transport's inbound event stream."""
    kind: TransportEventKind
    message: Optional[InboundMessage] = None
    error: Optional[MCPError] = None


class Transport(ABC):
    """Abstract base class for one bidirectional MCP connection.

    Subclasses implement the channel-specific parts (``_open``, ``_write``,
    ``_close_channel``, ``_channel_alive``); state transitions, the single
    close event and the inbound event queue live here.
    """

    kind = "abstract"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self._state = TransportState.CONNECTING
        self._events: "asyncio.Queue[TransportEvent]" = asyncio.Queue()
        self._closed_event: Optional[asyncio.Event] = None
        self.logger = logger.bind(transport=self.kind)

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def closed(self) -> bool:
        """Check if transport is closed."""
        return self._state == TransportState.CLOSED

    def is_connected(self) -> bool:
        """True only while open and the channel confirms liveness."""
        return self._state == TransportState.OPEN and self._channel_alive()

    def _closed_signal(self) -> asyncio.Event:
        if self._closed_event is None:
            self._closed_event = asyncio.Event()
            if self.closed:
                self._closed_event.set()
        return self._closed_event

    async def start(self) -> None:
        """Open the channel and begin delivering inbound events."""
        if self._state != TransportState.CONNECTING:
            return

        try:
            await self._open()
        except Exception as e:
            self.logger.error("Failed to open transport", error=str(e))
            self._mark_closed()
            raise TransportError(f"Failed to open {self.kind} transport: {e}")

        self._state = TransportState.OPEN
        self.logger.info("Transport opened")

    async def send(self, message: OutboundMessage) -> None:
        """Serialize and transmit one response or notification."""
        if self._state != TransportState.OPEN:
            raise TransportError(f"{self.kind} transport not connected")

        payload = encode_message(message)
        try:
            await self._write(payload)
        except TransportError:
            raise
        except Exception as e:
            self.logger.error("Failed to send message", error=str(e))
            if not self._channel_alive():
                self._mark_closed()
            raise TransportError(f"Failed to send {self.kind} message: {e}")

        self.logger.debug("Message sent", size=len(payload))

    async def close(self) -> None:
        """Close the transport; closing twice is a no-op."""
        if self._state in (TransportState.CLOSING, TransportState.CLOSED):
            return

        self._state = TransportState.CLOSING
        try:
            await self._close_channel()
        except Exception as e:
            self.logger.error("Error during transport close", error=str(e))
        finally:
            self._mark_closed()

    async def wait_closed(self) -> None:
        await self._closed_signal().wait()

    async def events(self) -> AsyncIterator[TransportEvent]:
        """Inbound events, ending after the close event."""
        while True:
            event = await self._events.get()
            yield event
            if event.kind == TransportEventKind.CLOSE:
                return

    def _emit_message(self, message: InboundMessage) -> None:
        self.logger.debug(
            "Message received",
            method=message.method,
            message_id=getattr(message, "id", None),
        )
        self._events.put_nowait(TransportEvent(TransportEventKind.MESSAGE, message=message))

    def _emit_error(self, error: MCPError) -> None:
        self.logger.warning("Transport error", error_code=int(error.code), error=error.message)
        self._events.put_nowait(TransportEvent(TransportEventKind.ERROR, error=error))

    def _mark_closed(self) -> None:
        """Enter the closed state and emit the close event exactly once."""
        if self._state == TransportState.CLOSED:
            return
        self._state = TransportState.CLOSED
        self._events.put_nowait(TransportEvent(TransportEventKind.CLOSE))
        if self._closed_event is not None:
            self._closed_event.set()
        self.logger.info("Transport closed")

    def _receive_raw(self, raw: Any) -> None:
        """Decode one framed payload and emit it, or emit the decode error."""
        try:
            message = decode_message(raw)
        except MCPError as e:
            self._emit_error(e)
            return
        self._emit_message(message)

    @abstractmethod
    async def _open(self) -> None:
        """Establish the underlying channel and start reading."""
        pass

    @abstractmethod
    async def _write(self, payload: str) -> None:
        """Transmit one serialized message."""
        pass

    @abstractmethod
    async def _close_channel(self) -> None:
        """Release the underlying channel."""
        pass

    def _channel_alive(self) -> bool:
        return True

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
