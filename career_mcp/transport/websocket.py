"""WebSocket transport implementation for MCP."""

import asyncio
from typing import Any, Dict, Optional
import websockets
from websockets.protocol import State

from .base import Transport
from ..protocol.errors import TransportError


class WebSocketTransport(Transport):
    """One accepted WebSocket connection; each text frame is one message."""

    kind = "websocket"

    def __init__(self, websocket: Any, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._websocket = websocket
        self._receive_task: Optional[asyncio.Task] = None
        self.remote_address = getattr(websocket, "remote_address", None)

    async def _open(self) -> None:
        self._receive_task = asyncio.create_task(self._message_receiver())

    async def _message_receiver(self) -> None:
        """Background task to handle incoming frames."""
        try:
            async for raw_message in self._websocket:
                self._receive_raw(raw_message)
        except websockets.exceptions.ConnectionClosed as e:
            self.logger.info("WebSocket connection closed by peer", code=getattr(e, "code", None))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error("Error receiving messages", error=str(e))
        finally:
            self._mark_closed()

    async def _write(self, payload: str) -> None:
        try:
            await self._websocket.send(payload)
        except websockets.exceptions.ConnectionClosed:
            self._mark_closed()
            raise TransportError("WebSocket connection closed")

    async def _close_channel(self) -> None:
        try:
            await self._websocket.close()
        finally:
            if self._receive_task and not self._receive_task.done():
                self._receive_task.cancel()
                try:
                    await self._receive_task
                except asyncio.CancelledError:
                    pass

    def _channel_alive(self) -> bool:
        return getattr(self._websocket, "state", None) == State.OPEN
