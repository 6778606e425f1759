"""Room membership: which connections belong to which scope.

Consumers mutate membership from the event loop while REST views read it
from worker threads, so every access goes through one lock.  Nothing in
the critical sections awaits or does I/O.
"""
from __future__ import annotations

import threading
from collections import defaultdict


class RoomRegistry:
    """Map of scope name -> member connection ids, with a reverse index.

    Scopes are created on first join and are never removed; an abandoned
    scope is just an empty set.  Unknown scopes and connection ids are
    tolerated everywhere and degrade to no-ops.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._members: dict[str, set[str]] = defaultdict(set)
        self._scopes: dict[str, set[str]] = defaultdict(set)

    def join(self, connection_id: str, scope: str) -> bool:
        """Add ``connection_id`` to ``scope``; return False if it was already there."""
        with self._lock:
            members = self._members[scope]
            if connection_id in members:
                return False
            members.add(connection_id)
            self._scopes[connection_id].add(scope)
            return True

    def leave(self, connection_id: str, scope: str) -> bool:
        with self._lock:
            members = self._members.get(scope)
            if not members or connection_id not in members:
                return False
            members.discard(connection_id)
            scopes = self._scopes.get(connection_id)
            if scopes is not None:
                scopes.discard(scope)
                if not scopes:
                    del self._scopes[connection_id]
            return True

    def leave_all(self, connection_id: str) -> frozenset[str]:
        """Remove ``connection_id`` from every scope; return the scopes it left."""
        with self._lock:
            scopes = self._scopes.pop(connection_id, set())
            for scope in scopes:
                members = self._members.get(scope)
                if members is not None:
                    members.discard(connection_id)
            return frozenset(scopes)

    def members_of(self, scope: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._members.get(scope, ()))

    def scopes_of(self, connection_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._scopes.get(connection_id, ()))

    def scope_names(self) -> list[str]:
        with self._lock:
            return sorted(self._members)
