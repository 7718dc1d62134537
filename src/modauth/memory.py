"""In-memory session authority, connection, room and session.

Suitable for local simulation and tests. Real deployments provide their own
signaling connection implementing SecondaryConnectionProtocol.

Connection options shared between a session's primary connection and the
secondary connection built from them:
- "authority": the InMemoryAuthority validating logins
- "settings": dict where an issued moderator session ID is stored
"""

import asyncio
import hmac
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any

from pyee.base import EventEmitter

from modauth.errors import AuthorityError, ConnectionStateError
from modauth.protocols import (
    AuthorityErrorCondition,
    ConnectionErrorKind,
    ConnectionEvent,
    ConnectionState,
)

logger = logging.getLogger(__name__)

MODERATOR = "moderator"
PARTICIPANT = "participant"


class InMemoryAuthority:
    """Session authority keeping accounts and issued sessions in memory.

    Attributes:
        accounts: Mapping of user ID to password.
        moderators: User IDs allowed to moderate. Defaults to every account.
        room_passwords: Mapping of room name to the password needed to join.
    """

    def __init__(
        self,
        accounts: dict[str, str] | None = None,
        moderators: set[str] | None = None,
        room_passwords: dict[str, str] | None = None,
    ):
        self.accounts = dict(accounts or {})
        self.moderators = set(self.accounts) if moderators is None else set(moderators)
        self.room_passwords = dict(room_passwords or {})
        self._sessions: dict[str, tuple[str, str]] = {}  # session_id -> (user, room)

    def verify_credentials(self, user_id: str, password: str) -> bool:
        """Check a login against the known accounts (constant-time)."""
        expected = self.accounts.get(user_id)
        if expected is None:
            return False
        return hmac.compare_digest(expected.encode(), password.encode())

    def issue_session(self, user_id: str, room: str) -> str:
        """Issue a moderator session for a user in a room.

        Raises:
            AuthorityError: If the user may not moderate.
        """
        if user_id not in self.moderators:
            raise AuthorityError(
                AuthorityErrorCondition.NOT_AUTHORIZED.value,
                f"{user_id} is not allowed to moderate {room}",
            )
        session_id = secrets.token_hex(16)
        self._sessions[session_id] = (user_id, room)
        logger.debug(f"Issued moderator session for {user_id} in {room}")
        return session_id

    def role_for(self, session_id: str | None, room: str) -> str:
        """Role granted to a participant joining a room with a session ID."""
        if session_id is None:
            return PARTICIPANT
        entry = self._sessions.get(session_id)
        if entry is not None and entry[1] == room:
            return MODERATOR
        return PARTICIPANT


class InMemoryConnection(EventEmitter):
    """Signaling connection logging in against an InMemoryAuthority.

    Events are emitted on the next event loop iteration, like a network
    transport would.
    """

    def __init__(self, options: dict[str, Any] | None = None):
        super().__init__()
        self.options = dict(options or {})
        self.user_id: str | None = None
        self._state = ConnectionState.IDLE
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: asyncio.Handle | None = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def authority(self) -> InMemoryAuthority | None:
        return self.options.get("authority")

    def connect(self, id: str, password: str) -> None:
        """Start logging in. Emits ESTABLISHED or FAILED.

        Raises:
            ConnectionStateError: If already connecting or connected.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            raise ConnectionStateError(f"Cannot connect while {self._state.value}")

        self._loop = asyncio.get_running_loop()
        self._state = ConnectionState.CONNECTING
        self._pending = self._loop.call_soon(self._complete_login, id, password)

    def _complete_login(self, id: str, password: str) -> None:
        self._pending = None
        authority = self.authority

        if authority is None:
            self._state = ConnectionState.FAILED
            self.emit(
                ConnectionEvent.FAILED,
                ConnectionErrorKind.OTHER_ERROR.value,
                "No session authority configured",
            )
        elif authority.verify_credentials(id, password):
            self._state = ConnectionState.CONNECTED
            self.user_id = id
            self.emit(ConnectionEvent.ESTABLISHED)
        else:
            self._state = ConnectionState.FAILED
            self.emit(
                ConnectionEvent.FAILED,
                ConnectionErrorKind.PASSWORD_REQUIRED.value,
                f"Invalid credentials for {id}",
            )

    def disconnect(self) -> None:
        """Close the connection. Emits DISCONNECTED once per live connection."""
        if self._state not in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return

        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

        self._state = ConnectionState.DISCONNECTED
        self.user_id = None
        self._loop.call_soon(self.emit, ConnectionEvent.DISCONNECTED)

    def create_room(self, name: str, config: dict[str, Any]) -> "InMemoryRoom":
        """Create a room handle bound to this connection.

        Raises:
            ConnectionStateError: If not connected.
        """
        if self._state != ConnectionState.CONNECTED:
            raise ConnectionStateError("Cannot create a room while not connected")
        return InMemoryRoom(name=name, config=dict(config or {}), connection=self)


class InMemoryModerator:
    """Moderator operations of an InMemoryRoom."""

    def __init__(self, room: "InMemoryRoom"):
        self.room = room

    async def authenticate(self) -> None:
        """Request a moderator session and store it in the connection settings.

        Raises:
            AuthorityError: If the connection is gone or the user may not moderate.
        """
        await asyncio.sleep(0)

        connection = self.room.connection
        authority = connection.authority
        if connection.state != ConnectionState.CONNECTED or authority is None:
            raise AuthorityError(
                AuthorityErrorCondition.SERVICE_UNAVAILABLE.value,
                "Connection to the session authority is closed",
            )

        session_id = authority.issue_session(connection.user_id, self.room.name)
        settings = connection.options.get("settings")
        if settings is not None:
            settings["session_id"] = session_id


@dataclass
class InMemoryRoom:
    """Room handle created by InMemoryConnection.create_room()."""

    name: str
    config: dict[str, Any]
    connection: InMemoryConnection
    moderator: InMemoryModerator = field(init=False)

    def __post_init__(self) -> None:
        self.moderator = InMemoryModerator(self)


@dataclass
class SessionOptions:
    """Options of a conference session."""

    name: str
    config: dict[str, Any] = field(default_factory=dict)


class InMemorySession:
    """Conference session that joins rooms through an InMemoryAuthority.

    Attributes:
        options: Room name and configuration.
        connection: Primary connection; its options carry the authority.
        joins: Room passwords of every join() call, in order.
        role: Role granted by the last successful join.
    """

    def __init__(
        self,
        name: str,
        connection: InMemoryConnection,
        config: dict[str, Any] | None = None,
    ):
        self.options = SessionOptions(name=name, config=dict(config or {}))
        self.connection = connection
        self.joins: list[str | None] = []
        self.role: str | None = None

    async def join(self, room_password: str | None = None) -> None:
        """Join the room, as moderator if a moderator session is stored.

        Raises:
            AuthorityError: If the room password is wrong.
        """
        self.joins.append(room_password)
        authority = self.connection.authority
        if authority is None:
            raise AuthorityError(
                AuthorityErrorCondition.SERVICE_UNAVAILABLE.value,
                "No session authority configured",
            )

        expected = authority.room_passwords.get(self.options.name)
        if expected is not None and room_password != expected:
            raise AuthorityError(
                AuthorityErrorCondition.NOT_AUTHORIZED.value,
                f"Wrong password for room {self.options.name}",
            )

        settings = self.connection.options.get("settings") or {}
        self.role = authority.role_for(settings.get("session_id"), self.options.name)
        logger.info(f"Joined {self.options.name} as {self.role}")
