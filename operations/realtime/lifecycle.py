"""Connection lifecycle: Connecting -> Connected -> Disconnected.

The manager is the directory the broadcaster resolves connection ids
against.  Room membership itself lives in :class:`RoomRegistry`; the
manager only lets Connected connections change it and guarantees that a
closed connection is removed from every room exactly once.
"""
from __future__ import annotations

import enum
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .registry import RoomRegistry

if TYPE_CHECKING:
    from .broadcaster import Sender

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass
class Connection:
    id: str
    sender: "Sender"
    state: ConnectionState = ConnectionState.CONNECTING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED


class ConnectionLifecycleManager:
    def __init__(self, registry: RoomRegistry) -> None:
        self.registry = registry
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}

    def open(self, sender: "Sender") -> Connection:
        """Register a new connection in the Connecting state."""
        conn = Connection(id=uuid.uuid4().hex, sender=sender)
        with self._lock:
            self._connections[conn.id] = conn
        return conn

    def accept(self, connection_id: str) -> bool:
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None or conn.state is not ConnectionState.CONNECTING:
                return False
            conn.state = ConnectionState.CONNECTED
        logger.info("socket connected: %s", connection_id)
        return True

    def join(self, connection_id: str, scope: str) -> bool:
        # held across the registry call so a concurrent close cannot interleave
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None or not conn.is_connected:
                return False
            added = self.registry.join(connection_id, scope)
        if added:
            logger.info("socket %s joined %s", connection_id, scope)
        return added

    def leave(self, connection_id: str, scope: str) -> bool:
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is None or not conn.is_connected:
                return False
            return self.registry.leave(connection_id, scope)

    def close(self, connection_id: str) -> bool:
        """Move the connection to Disconnected and drop all of its rooms.

        Returns False when the id is unknown or already closed.
        """
        with self._lock:
            conn = self._connections.pop(connection_id, None)
            if conn is None:
                return False
            conn.state = ConnectionState.DISCONNECTED
        left = self.registry.leave_all(connection_id)
        logger.info("socket disconnected: %s (left %d rooms)", connection_id, len(left))
        return True

    def get(self, connection_id: str) -> Connection | None:
        with self._lock:
            return self._connections.get(connection_id)

    def connected(self) -> list[Connection]:
        with self._lock:
            return [c for c in self._connections.values() if c.is_connected]

    def scopes_of(self, connection_id: str) -> frozenset[str]:
        return self.registry.scopes_of(connection_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
