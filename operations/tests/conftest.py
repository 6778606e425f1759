import pytest
from django.core.cache import cache

from operations.realtime import hub
from operations.realtime.broadcaster import EventBroadcaster
from operations.realtime.lifecycle import ConnectionLifecycleManager
from operations.realtime.registry import RoomRegistry


@pytest.fixture(autouse=True)
def fast_hashing(settings):
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']


@pytest.fixture(autouse=True)
def clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def fresh_hub(monkeypatch):
    """Give every test its own registry, lifecycle manager and broadcaster."""
    registry = RoomRegistry()
    connections = ConnectionLifecycleManager(registry)
    broadcaster = EventBroadcaster(registry, connections, send_timeout=0.5)
    monkeypatch.setattr(hub, 'registry', registry)
    monkeypatch.setattr(hub, 'connections', connections)
    monkeypatch.setattr(hub, 'broadcaster', broadcaster)
    return hub
