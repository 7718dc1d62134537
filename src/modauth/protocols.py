"""Protocols and enums for modauth collaborators."""

from enum import Enum, auto
from typing import Any, Awaitable, Callable, Protocol


class ConnectionEvent(str, Enum):
    """Events emitted by a signaling connection."""

    ESTABLISHED = "connection.established"
    FAILED = "connection.failed"  # (connection_error, message)
    DISCONNECTED = "connection.disconnected"


class ConnectionErrorKind(str, Enum):
    """Transport-level failures reported with ConnectionEvent.FAILED."""

    PASSWORD_REQUIRED = "connection.passwordRequired"
    CONNECTION_DROPPED_ERROR = "connection.droppedError"
    SERVER_ERROR = "connection.serverError"
    NOT_LIVE_ERROR = "connection.notLiveError"
    OTHER_ERROR = "connection.otherError"


class AuthorityErrorCondition(str, Enum):
    """Common error conditions returned by the session authority."""

    NOT_AUTHORIZED = "not-authorized"
    NOT_ALLOWED = "not-allowed"
    SERVICE_UNAVAILABLE = "service-unavailable"
    INTERNAL_SERVER_ERROR = "internal-server-error"


class ConnectionState(Enum):
    """State of a signaling connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


class HandshakeState(Enum):
    """State of a role-upgrade handshake."""

    IDLE = auto()  # Handshake not started
    CONNECTING = auto()  # connect() issued on the secondary connection
    ESTABLISHED = auto()  # Secondary connection logged in
    AUTHENTICATING = auto()  # Waiting on the session authority
    JOINING = auto()  # Parent session told to rejoin
    SETTLED = auto()  # Pending operation resolved or rejected


# ============================================================================
# Collaborator Protocols
# ============================================================================


class ModeratorProtocol(Protocol):
    """Moderator operations of a room handle."""

    async def authenticate(self) -> None:
        """Obtain a session credential from the authority.

        Raises AuthorityError if the authority refuses.
        """
        ...


class RoomProtocol(Protocol):
    """Room handle created from a secondary connection."""

    name: str
    config: dict[str, Any]
    moderator: ModeratorProtocol


class SecondaryConnectionProtocol(Protocol):
    """Event-emitting signaling connection used for credentialed login."""

    options: dict[str, Any]

    def on(self, event: str, f: Callable[..., Any] | None = None) -> Any:
        """Register a listener for an event."""
        ...

    def connect(self, id: str, password: str) -> None:
        """Start connecting with the given credentials."""
        ...

    def disconnect(self) -> None:
        """Close the connection. Safe to call in any state."""
        ...

    def create_room(self, name: str, config: dict[str, Any]) -> RoomProtocol:
        """Create a room handle bound to this connection."""
        ...


class SessionOptionsProtocol(Protocol):
    """Options of a conference session."""

    name: str
    config: dict[str, Any]


class ConferenceSessionProtocol(Protocol):
    """Parent conference session that rejoins after a role upgrade."""

    options: SessionOptionsProtocol
    connection: SecondaryConnectionProtocol

    def join(self, room_password: str | None = None) -> Awaitable[None] | None:
        """Join (or rejoin) the conference room."""
        ...
