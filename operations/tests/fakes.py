"""In-process stand-ins for socket clients."""
import asyncio

from operations.realtime import hub


class RecordingSender:
    """Sender that keeps what it was given.

    ``delay`` stalls each write, ``error`` makes it raise and ``accept``
    is what it reports back.
    """

    def __init__(self, *, accept=True, delay=0, error=None):
        self.accept = accept
        self.delay = delay
        self.error = error
        self.events = []

    async def send(self, event):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.events.append(event)
        return self.accept

    @property
    def names(self):
        return [e.name for e in self.events]

    def payloads(self, name):
        return [dict(e.payload) for e in self.events if e.name == name]


def attach(sender, *scopes):
    """Register ``sender`` as a connected client in ``scopes``; returns the connection id."""
    conn = hub.connections.open(sender)
    hub.connections.accept(conn.id)
    for scope in scopes:
        hub.connections.join(conn.id, scope)
    return conn.id
