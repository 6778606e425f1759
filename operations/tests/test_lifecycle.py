from operations.realtime.lifecycle import ConnectionLifecycleManager, ConnectionState
from operations.realtime.registry import RoomRegistry

from .fakes import RecordingSender


def _manager():
    reg = RoomRegistry()
    return reg, ConnectionLifecycleManager(reg)


def test_open_accept_close_transitions():
    reg, mgr = _manager()
    conn = mgr.open(RecordingSender())
    assert conn.state is ConnectionState.CONNECTING

    assert mgr.accept(conn.id) is True
    assert conn.state is ConnectionState.CONNECTED
    assert mgr.accept(conn.id) is False

    assert mgr.close(conn.id) is True
    assert conn.state is ConnectionState.DISCONNECTED
    assert mgr.get(conn.id) is None


def test_join_requires_connected_state():
    reg, mgr = _manager()
    conn = mgr.open(RecordingSender())
    assert mgr.join(conn.id, "hospital_HOSP001") is False
    mgr.accept(conn.id)
    assert mgr.join(conn.id, "hospital_HOSP001") is True
    assert reg.members_of("hospital_HOSP001") == {conn.id}


def test_close_leaves_every_room_once():
    reg, mgr = _manager()
    conn = mgr.open(RecordingSender())
    mgr.accept(conn.id)
    mgr.join(conn.id, "hospital_HOSP001")
    mgr.join(conn.id, "ambulance_AMB001")

    assert mgr.close(conn.id) is True
    assert reg.members_of("hospital_HOSP001") == frozenset()
    assert reg.members_of("ambulance_AMB001") == frozenset()
    assert mgr.close(conn.id) is False


def test_join_after_close_is_ignored():
    reg, mgr = _manager()
    conn = mgr.open(RecordingSender())
    mgr.accept(conn.id)
    mgr.close(conn.id)

    assert mgr.join(conn.id, "hospital_HOSP001") is False
    assert reg.members_of("hospital_HOSP001") == frozenset()


def test_connection_ids_are_unique():
    _, mgr = _manager()
    ids = {mgr.open(RecordingSender()).id for _ in range(50)}
    assert len(ids) == 50
    assert len(mgr) == 50


def test_connected_lists_only_accepted():
    _, mgr = _manager()
    a = mgr.open(RecordingSender())
    b = mgr.open(RecordingSender())
    mgr.accept(a.id)
    assert [c.id for c in mgr.connected()] == [a.id]
    assert mgr.scopes_of(b.id) == frozenset()
