"""Configuration management for modauth."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml


@dataclass
class HandshakeConfig:
    """Role-upgrade handshake configuration."""

    timeout: float | None = None  # seconds, None waits indefinitely


@dataclass
class Config:
    """modauth configuration."""

    log_level: str = "INFO"
    log_file: str | None = None
    room: str = "lobby"
    room_password: str | None = None
    handshake: HandshakeConfig = field(default_factory=HandshakeConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "modauth" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return None


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    handshake_data = data.get("handshake") or {}
    handshake_config = HandshakeConfig(
        timeout=handshake_data.get("timeout", HandshakeConfig.timeout),
    )

    return Config(
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        room=data.get("room", Config.room),
        room_password=data.get("room_password", Config.room_password),
        handshake=handshake_config,
    )
