"""Process-wide realtime instances.

Every consumer and REST handler in this process shares one registry, one
lifecycle manager and one broadcaster.
"""
from .broadcaster import EventBroadcaster
from .lifecycle import ConnectionLifecycleManager
from .registry import RoomRegistry

registry = RoomRegistry()
connections = ConnectionLifecycleManager(registry)
broadcaster = EventBroadcaster(registry, connections)
