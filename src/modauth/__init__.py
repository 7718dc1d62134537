"""modauth - moderator role upgrade for conference sessions.

Provides:
- AuthConnection: single-flight, cancelable role-upgrade handshake
- Collaborator protocols for connections, rooms and sessions
- In-memory collaborators for simulation and tests
"""

from .auth_connection import AuthConnection
from .errors import (
    AuthorityError,
    ConnectionStateError,
    ModAuthError,
    UpgradeRoleError,
)
from .protocols import (
    AuthorityErrorCondition,
    ConnectionErrorKind,
    ConnectionEvent,
    ConnectionState,
    HandshakeState,
)

__version__ = "0.1.0"

__all__ = [
    "AuthConnection",
    "AuthorityError",
    "AuthorityErrorCondition",
    "ConnectionErrorKind",
    "ConnectionEvent",
    "ConnectionState",
    "ConnectionStateError",
    "HandshakeState",
    "ModAuthError",
    "UpgradeRoleError",
    "__version__",
]
