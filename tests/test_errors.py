"""Tests for errors module."""

from modauth.errors import (
    AuthorityError,
    ConnectionStateError,
    ModAuthError,
    UpgradeRoleError,
)


class TestErrorHierarchy:
    """All errors share a common base."""

    def test_subclasses_of_base(self):
        """Every modauth error derives from ModAuthError."""
        assert issubclass(AuthorityError, ModAuthError)
        assert issubclass(ConnectionStateError, ModAuthError)
        assert issubclass(UpgradeRoleError, ModAuthError)


class TestAuthorityError:
    """Tests for AuthorityError."""

    def test_fields(self):
        """Condition and message are kept."""
        error = AuthorityError("not-authorized", "go away")

        assert error.error == "not-authorized"
        assert error.message == "go away"
        assert str(error) == "go away"

    def test_str_falls_back_to_condition(self):
        """Without a message the condition is the text."""
        assert str(AuthorityError("not-allowed")) == "not-allowed"


class TestUpgradeRoleError:
    """Tests for UpgradeRoleError."""

    def test_empty_error_is_cancellation(self):
        """No fields set means canceled."""
        error = UpgradeRoleError()

        assert error.is_canceled
        assert str(error) == "canceled"

    def test_connection_error(self):
        """connection_error set is not a cancellation."""
        error = UpgradeRoleError(connection_error="connection.otherError", message="x")

        assert not error.is_canceled
        assert str(error) == "connection error: connection.otherError (x)"

    def test_authentication_error(self):
        """authentication_error set is not a cancellation."""
        error = UpgradeRoleError(authentication_error="not-authorized")

        assert not error.is_canceled
        assert str(error) == "authentication error: not-authorized"

    def test_message_only_is_not_cancellation(self):
        """A bare message still describes a failure."""
        error = UpgradeRoleError(message="socket closed")

        assert not error.is_canceled
        assert "socket closed" in str(error)

    def test_timed_out(self):
        """timed_out is its own kind of failure."""
        error = UpgradeRoleError(timed_out=True)

        assert not error.is_canceled
        assert str(error) == "timed out"

    def test_repr_lists_fields(self):
        """repr shows every field."""
        text = repr(UpgradeRoleError(connection_error="e", message="m"))

        assert "connection_error='e'" in text
        assert "message='m'" in text
        assert "timed_out=False" in text
