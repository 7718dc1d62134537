"""Base exceptions for modauth."""


class ModAuthError(Exception):
    """Base exception for all modauth errors."""

    pass


class AuthorityError(ModAuthError):
    """Session authority rejected a request.

    Attributes:
        error: Error condition returned by the authority (e.g. "not-authorized").
        message: More details about the error, if any.
    """

    def __init__(self, error: str | None, message: str | None = None):
        super().__init__(message or error or "authority error")
        self.error = error
        self.message = message


class ConnectionStateError(ModAuthError):
    """Operation not valid in the current connection state."""

    pass


class UpgradeRoleError(ModAuthError):
    """Role upgrade did not complete.

    Exactly one kind of failure is described by which fields are set:
    connection_error for a transport failure, authentication_error for a
    rejection by the session authority, timed_out for an expired handshake.
    When none is set the operation was canceled.
    """

    def __init__(
        self,
        connection_error: str | None = None,
        authentication_error: str | None = None,
        message: str | None = None,
        timed_out: bool = False,
    ):
        self.connection_error = connection_error
        self.authentication_error = authentication_error
        self.message = message
        self.timed_out = timed_out
        super().__init__(self._describe())

    @property
    def is_canceled(self) -> bool:
        """True if the operation was canceled rather than failed."""
        return (
            self.connection_error is None
            and self.authentication_error is None
            and self.message is None
            and not self.timed_out
        )

    def _describe(self) -> str:
        if self.connection_error is not None:
            kind = f"connection error: {self.connection_error}"
        elif self.authentication_error is not None:
            kind = f"authentication error: {self.authentication_error}"
        elif self.timed_out:
            kind = "timed out"
        elif self.message is None:
            return "canceled"
        else:
            kind = "authentication error"
        if self.message:
            return f"{kind} ({self.message})"
        return kind

    def __repr__(self) -> str:
        return (
            f"UpgradeRoleError(connection_error={self.connection_error!r}, "
            f"authentication_error={self.authentication_error!r}, "
            f"message={self.message!r}, timed_out={self.timed_out!r})"
        )
