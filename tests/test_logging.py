"""Tests for logging module."""

import logging
from types import SimpleNamespace

from modauth.config import Config
from modauth.logging import HandshakeLogger, reset_logging, setup_logging
from modauth.protocols import HandshakeState


def read_lines(path) -> list[str]:
    return path.read_text().strip().splitlines()


class TestSetupLogging:
    """Test logging setup."""

    def test_setup_logging_is_idempotent(self):
        """Second setup returns the same logger without extra handlers."""
        first = setup_logging(Config())
        handlers = len(first.handlers)

        second = setup_logging(Config(log_level="DEBUG"))

        assert second is first
        assert first.name == "modauth"
        assert len(second.handlers) == handlers

    def test_level_override_beats_config(self, tmp_path):
        """An explicit level (from --log-level) wins over config.log_level."""
        log_file = tmp_path / "modauth.log"

        logger = setup_logging(
            Config(log_file=str(log_file), log_level="WARNING"), level="debug"
        )
        logger.debug("details")

        assert logger.level == logging.DEBUG
        assert "details" in log_file.read_text()

    def test_records_outside_handshake_show_dash(self, tmp_path):
        """Plain module records get '-' in the handshake column."""
        log_file = tmp_path / "sub" / "modauth.log"

        setup_logging(Config(log_file=str(log_file)))
        logging.getLogger("modauth.config").info("loaded")

        assert read_lines(log_file)[-1].endswith("[INFO] [-] loaded")

    def test_reset_restores_propagation(self):
        """reset_logging hands the logger back to the root handlers."""
        logger = setup_logging(Config())
        assert logger.propagate is False

        reset_logging()

        assert logger.handlers == []
        assert logger.propagate is True


class TestHandshakeLogger:
    """Test the handshake logger adapter."""

    def test_records_carry_label_and_current_state(self, tmp_path):
        """Each record shows the state at the time it was logged."""
        log_file = tmp_path / "modauth.log"
        setup_logging(Config(log_file=str(log_file)))
        owner = SimpleNamespace(state=HandshakeState.CONNECTING)
        log = HandshakeLogger(logging.getLogger("modauth.auth_connection"), owner)

        log.info("connecting")
        owner.state = HandshakeState.AUTHENTICATING
        log.info("authenticating")

        lines = read_lines(log_file)
        assert lines[-2].endswith(f"[{log.label} CONNECTING] connecting")
        assert lines[-1].endswith(f"[{log.label} AUTHENTICATING] authenticating")

    def test_labels_are_unique(self):
        """Every controller gets its own label."""
        owner = SimpleNamespace(state=HandshakeState.IDLE)
        logger = logging.getLogger("modauth.auth_connection")

        first = HandshakeLogger(logger, owner)
        second = HandshakeLogger(logger, owner)

        assert first.label != second.label
        assert first.label.startswith("upgrade-")

    def test_caller_extra_is_kept(self, caplog):
        """Extra fields passed by the caller survive next to the tag."""
        caplog.set_level(logging.INFO, logger="modauth")
        owner = SimpleNamespace(state=HandshakeState.SETTLED)
        log = HandshakeLogger(logging.getLogger("modauth.auth_connection"), owner)

        log.info("done", extra={"room": "lobby"})

        record = caplog.records[-1]
        assert record.room == "lobby"
        assert record.handshake.endswith(" SETTLED")
