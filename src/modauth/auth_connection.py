"""Role upgrade over a secondary signaling connection.

An anonymous participant of a conference session becomes a moderator by:
1. Logging in on a separate, short-lived connection with real credentials
2. Asking the session authority for a session credential on that connection
3. Dropping the secondary connection and letting the parent session rejoin

The handshake runs at most once per AuthConnection and its pending future
settles exactly once. Settlement is an UpgradeRoleError whose fields tell the
failure apart (connection_error, authentication_error, timed_out) or, when
none is set, report a cancellation.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable

from modauth.errors import UpgradeRoleError
from modauth.logging import HandshakeLogger
from modauth.protocols import (
    ConferenceSessionProtocol,
    ConnectionErrorKind,
    ConnectionEvent,
    HandshakeState,
    RoomProtocol,
    SecondaryConnectionProtocol,
)

logger = logging.getLogger(__name__)


class AuthConnection:
    """Authenticates on a secondary connection and upgrades the session role.

    Attributes:
        session: Parent conference session. Not owned.
        timeout: Seconds to wait for the handshake, or None to wait forever.
    """

    def __init__(
        self,
        session: ConferenceSessionProtocol,
        connection_factory: Callable[[dict[str, Any]], SecondaryConnectionProtocol]
        | None = None,
        timeout: float | None = None,
    ):
        """Initialize the controller.

        Args:
            session: Conference session whose role should be upgraded.
            connection_factory: Builds the secondary connection from the
                primary connection's options (for testing). Defaults to a new
                connection of the same type as the primary one.
            timeout: Optional handshake timeout in seconds.
        """
        self.session = session
        self.timeout = timeout
        self._connection_factory = connection_factory or self._default_connection_factory
        self._connection = self._connection_factory(session.connection.options)
        self._room: RoomProtocol | None = None
        self._canceled = False
        self._future: asyncio.Future | None = None
        self._state = HandshakeState.IDLE
        self._auth_task: asyncio.Task | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._log = HandshakeLogger(logger, self)

    def _default_connection_factory(
        self, options: dict[str, Any]
    ) -> SecondaryConnectionProtocol:
        """Create a connection like the primary one, with the same options."""
        return type(self.session.connection)(options)

    @property
    def state(self) -> HandshakeState:
        """Current handshake state."""
        return self._state

    @property
    def canceled(self) -> bool:
        """Whether cancel() has been called."""
        return self._canceled

    @property
    def connection(self) -> SecondaryConnectionProtocol:
        """The secondary connection owned by this controller."""
        return self._connection

    @property
    def room(self) -> RoomProtocol | None:
        """Room handle, created once the secondary connection is established."""
        return self._room

    def authenticate_and_upgrade_role(
        self,
        *,
        id: str,
        password: str,
        room_password: str | None = None,
        on_login_successful: Callable[[], Any] | None = None,
    ) -> asyncio.Future:
        """Log in on the secondary connection and upgrade the role to moderator.

        Only the first call starts the handshake. Later calls return the same
        future and their arguments are ignored.

        Args:
            id: User ID to log in with, e.g. "user@example.com".
            password: Password to log in with.
            room_password: Password passed to the parent session's join().
            on_login_successful: Called once the login succeeded, before the
                session authority is contacted.

        Returns:
            Future resolved with None once the parent session has rejoined.
            Rejected with UpgradeRoleError otherwise. Callers must await the
            future or read its exception, even when canceling before the
            handshake starts; asyncio logs rejections nobody retrieved.
        """
        if self._future is not None:
            return self._future

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        future.add_done_callback(self._on_settled)
        self._future = future

        # Listeners go on before connect() so no event can be missed
        @self._connection.on(ConnectionEvent.ESTABLISHED)
        def on_established():
            if self._canceled or self._state is not HandshakeState.CONNECTING:
                return
            self._state = HandshakeState.ESTABLISHED
            self._log.info(f"Logged in as {id}, requesting moderator session")

            if on_login_successful is not None:
                on_login_successful()

            options = self.session.options
            self._room = self._connection.create_room(options.name, options.config)
            self._state = HandshakeState.AUTHENTICATING
            self._auth_task = loop.create_task(self._authenticate(room_password))

        @self._connection.on(ConnectionEvent.FAILED)
        def on_failed(connection_error=None, message=None):
            if connection_error is None:
                connection_error = ConnectionErrorKind.OTHER_ERROR.value
            self._log.debug(f"Secondary connection failed: {connection_error} {message}")
            self._settle(
                UpgradeRoleError(connection_error=connection_error, message=message)
            )
            self._connection.disconnect()

        @self._connection.on(ConnectionEvent.DISCONNECTED)
        def on_disconnected():
            # Once join() was issued only its outcome settles the handshake
            if self._canceled and self._state is not HandshakeState.JOINING:
                self._settle(UpgradeRoleError())

        if self._canceled:
            self._settle(UpgradeRoleError())
        else:
            self._state = HandshakeState.CONNECTING
            if self.timeout is not None:
                self._timeout_handle = loop.call_later(self.timeout, self._on_timeout)
            self._log.debug(f"Connecting secondary connection as {id}")
            self._connection.connect(id, password)

        return future

    async def _authenticate(self, room_password: str | None) -> None:
        """Obtain a moderator session from the authority, then rejoin."""
        try:
            await self._room.moderator.authenticate()

            # Cancellation only suppresses the rejoin; settlement comes from
            # the disconnect that cancel() triggered.
            if self._canceled or self._future.done():
                self._log.debug("Role upgrade canceled after authentication")
                return

            self._connection.disconnect()

            self._state = HandshakeState.JOINING
            result = self.session.join(room_password)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._connection.disconnect()

            error = UpgradeRoleError(
                authentication_error=getattr(e, "error", None),
                message=getattr(e, "message", None) or str(e) or type(e).__name__,
            )
            error.__cause__ = e
            self._settle(error)
            return

        self._log.info("Role upgraded, session rejoined")
        self._settle()

    def _on_timeout(self) -> None:
        """Reject the handshake if nothing settled it in time."""
        self._timeout_handle = None
        if self._future is None or self._future.done():
            return
        # join() already issued, its outcome settles the handshake
        if self._state is HandshakeState.JOINING:
            return

        self._log.warning(f"Role upgrade timed out after {self.timeout}s")
        self._settle(
            UpgradeRoleError(
                timed_out=True,
                message=f"No response within {self.timeout} seconds",
            )
        )
        if self._auth_task is not None:
            self._auth_task.cancel()
        self._connection.disconnect()

    def _settle(self, error: UpgradeRoleError | None = None) -> bool:
        """Settle the pending future. First settlement wins.

        Returns:
            True if this call settled the future.
        """
        if self._future is None or self._future.done():
            return False

        self._state = HandshakeState.SETTLED
        if error is None:
            self._future.set_result(None)
        else:
            self._log.debug(f"Role upgrade failed: {error}")
            self._future.set_exception(error)
        return True

    def _on_settled(self, future: asyncio.Future) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def cancel(self) -> None:
        """Cancel the handshake if it is in progress.

        The pending future is rejected with an UpgradeRoleError that has no
        fields set once the secondary connection reports the disconnect. If
        the handshake has not started yet, it will reject immediately.
        """
        if self._canceled:
            return

        self._log.info("Canceling role upgrade")
        self._canceled = True
        self._connection.disconnect()
