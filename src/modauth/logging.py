"""Logging for modauth.

Records from a role-upgrade handshake carry a "handshake" field naming the
controller and its state, e.g.:

    2026-01-27 10:30:45 [INFO] [upgrade-1 AUTHENTICATING] Logged in as ...

Records without a handshake (config, CLI) show "-" in that column.
"""

import itertools
import logging
from pathlib import Path
from typing import Any, MutableMapping

from modauth.config import Config

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(handshake)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger: logging.Logger | None = None
_handshake_ids = itertools.count(1)


class HandshakeContextFilter(logging.Filter):
    """Gives records logged outside a handshake an empty handshake field."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "handshake"):
            record.handshake = "-"
        return True


class HandshakeLogger(logging.LoggerAdapter):
    """Logger adapter tagging records with a handshake label and its state.

    The owner only needs a ``state`` attribute holding an enum member; it is
    read at log time so each record shows the state it was emitted in.
    """

    def __init__(self, logger: logging.Logger, owner: Any):
        super().__init__(logger, {})
        self.owner = owner
        self.label = f"upgrade-{next(_handshake_ids)}"

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["handshake"] = f"{self.label} {self.owner.state.name}"
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(config: Config, level: str | None = None) -> logging.Logger:
    """Set up the modauth logger.

    Args:
        config: Configuration object with log settings.
        level: Level overriding config.log_level (e.g. from --log-level).

    Returns:
        Configured logger instance. Later calls return it unchanged.
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger("modauth")
    level_name = (level or config.log_level).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    context = HandshakeContextFilter()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context)
        logger.addHandler(handler)

    logger.propagate = False

    _logger = logger
    return logger


def reset_logging() -> None:
    """Reset logging state. Used for testing."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers:
            handler.close()
        _logger.handlers.clear()
        _logger.propagate = True
        _logger = None
