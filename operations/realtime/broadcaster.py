"""Fan-out of one event to a room or to every connected client.

Delivery is best effort: each recipient gets at most one write per call,
writes run concurrently under a per-recipient timeout, and a failing or
slow recipient never affects the others.  Nothing here raises back into
the caller.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Protocol

from .events import Event, public_view
from .lifecycle import Connection, ConnectionLifecycleManager
from .registry import RoomRegistry

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT = 2.0


class Sender(Protocol):
    """Transport write capability for one connection."""

    async def send(self, event: Event) -> bool:
        ...


class EventBroadcaster:
    def __init__(
        self,
        registry: RoomRegistry,
        connections: ConnectionLifecycleManager,
        *,
        send_timeout: float | None = None,
    ) -> None:
        self.registry = registry
        self.connections = connections
        self._send_timeout = send_timeout

    @property
    def send_timeout(self) -> float:
        if self._send_timeout is not None:
            return self._send_timeout
        from django.conf import settings

        return float(getattr(settings, "REALTIME_SEND_TIMEOUT", DEFAULT_SEND_TIMEOUT))

    async def broadcast_to_scope(self, scope: str, event: Event) -> int:
        """Deliver ``event`` to the current members of ``scope``.

        Returns the number of recipients that accepted the write.
        """
        members = self.registry.members_of(scope)
        if not members:
            return 0
        targets = []
        for connection_id in members:
            conn = self.connections.get(connection_id)
            if conn is not None and conn.is_connected:
                targets.append(conn)
        return await self._deliver(targets, event)

    async def broadcast_to_all(self, event: Event) -> int:
        return await self._deliver(self.connections.connected(), event)

    async def broadcast_dual(self, scope: str, scoped_name: str, public_name: str, payload: Any) -> tuple[int, int]:
        """Emit the staff view to ``scope`` and the public view to everyone."""
        scoped = await self.broadcast_to_scope(scope, Event(scoped_name, payload))
        public = await self.broadcast_to_all(Event(public_name, public_view(payload)))
        return scoped, public

    async def _deliver(self, targets: Iterable[Connection], event: Event) -> int:
        targets = list(targets)
        if not targets:
            return 0
        results = await asyncio.gather(
            *(self._send_one(conn, event) for conn in targets),
            return_exceptions=True,
        )
        delivered = 0
        for conn, result in zip(targets, results):
            if result is True:
                delivered += 1
            elif isinstance(result, BaseException):
                logger.warning("delivery of %s to %s failed: %r", event.name, conn.id, result)
        return delivered

    async def _send_one(self, conn: Connection, event: Event) -> bool:
        try:
            ok = await asyncio.wait_for(conn.sender.send(event), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning("delivery of %s to %s timed out", event.name, conn.id)
            return False
        if not ok:
            logger.info("delivery of %s to %s was refused", event.name, conn.id)
        return bool(ok)
