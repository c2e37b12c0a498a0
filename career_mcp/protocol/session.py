"""Per-connection handshake and capability negotiation state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

from .messages import ClientCapabilities, Implementation, JSONRPCNotification, ServerCapabilities

SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05",)


class HandshakeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"


@dataclass
class SessionState:
    """Negotiation state of one connection, created on connect."""
    state: HandshakeState = HandshakeState.UNINITIALIZED
    protocol_version: Optional[str] = None
    client_info: Optional[Implementation] = None
    client_capabilities: Optional[ClientCapabilities] = None
    server_capabilities: Optional[ServerCapabilities] = None
    log_level: str = "info"
    subscriptions: Set[str] = field(default_factory=set)

    @property
    def is_initialized(self) -> bool:
        return self.state == HandshakeState.INITIALIZED

    def begin(
        self,
        protocol_version: str,
        client_info: Implementation,
        client_capabilities: ClientCapabilities,
        server_capabilities: ServerCapabilities,
    ) -> None:
        self.protocol_version = protocol_version
        self.client_info = client_info
        self.client_capabilities = client_capabilities
        self.server_capabilities = server_capabilities
        self.state = HandshakeState.INITIALIZING

    def confirm(self) -> bool:
        """Apply the ``initialized`` notification; True if the state moved."""
        if self.state != HandshakeState.INITIALIZING:
            return False
        self.state = HandshakeState.INITIALIZED
        return True


Notifier = Callable[[JSONRPCNotification], Awaitable[None]]


@dataclass
class RequestContext:
    """What a handler may know about the caller of one request."""
    transport_id: Optional[str] = None
    session: SessionState = field(default_factory=SessionState)
    debug: bool = False
    notify: Optional[Notifier] = None

    async def send_notification(self, notification: JSONRPCNotification) -> None:
        if self.notify is not None:
            await self.notify(notification)

