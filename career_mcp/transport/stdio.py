"""Standard I/O transport implementation for MCP."""

import asyncio
import sys
from typing import Any, Dict, Optional

from .base import Transport

DEFAULT_CHUNK_SIZE = 64 * 1024


class StdioTransport(Transport):
    """Newline-delimited JSON over a byte stream.

    Defaults to the process stdin/stdout; pass a reader/writer pair to run over
    any other stream (a subprocess pipe, a socket, an in-memory stream).
    """

    kind = "stdio"

    def __init__(
        self,
        reader: Optional[asyncio.StreamReader] = None,
        writer: Optional[asyncio.StreamWriter] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(config)
        self._reader = reader
        self._writer = writer
        self._buffer = b""
        self._receive_task: Optional[asyncio.Task] = None
        self._chunk_size = self.config.get("chunk_size", DEFAULT_CHUNK_SIZE)

    async def _open(self) -> None:
        loop = asyncio.get_running_loop()

        if self._reader is None:
            self._reader = asyncio.StreamReader()
            protocol = asyncio.StreamReaderProtocol(self._reader)
            await loop.connect_read_pipe(lambda: protocol, sys.stdin)

        if self._writer is None:
            transport, protocol = await loop.connect_write_pipe(
                asyncio.streams.FlowControlMixin, sys.stdout
            )
            self._writer = asyncio.StreamWriter(transport, protocol, None, loop)

        self._receive_task = asyncio.create_task(self._message_receiver())

    async def _message_receiver(self) -> None:
        """Background task reading chunks until EOF."""
        try:
            while True:
                chunk = await self._reader.read(self._chunk_size)
                if not chunk:
                    break
                self.feed(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error("Error receiving messages", error=str(e))
        finally:
            if self._buffer.strip():
                self.logger.warning("Discarding unterminated fragment at EOF", size=len(self._buffer))
            self._buffer = b""
            self._mark_closed()

    def feed(self, data: bytes) -> None:
        """Buffer inbound bytes and emit every complete line."""
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")

        for line in lines:
            line = line.strip()
            if line:
                self._receive_raw(line)

    async def _write(self, payload: str) -> None:
        self._writer.write((payload + "\n").encode())
        await self._writer.drain()

    async def _close_channel(self) -> None:
        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        if self._writer and not self._writer.is_closing():
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except (ConnectionError, BrokenPipeError):
                pass

    def _channel_alive(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()
