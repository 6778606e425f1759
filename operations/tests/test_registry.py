import threading

from operations.realtime.registry import RoomRegistry


def test_join_then_members_of():
    reg = RoomRegistry()
    assert reg.join("c1", "hospital_HOSP001") is True
    assert reg.members_of("hospital_HOSP001") == {"c1"}
    assert reg.scopes_of("c1") == {"hospital_HOSP001"}


def test_join_is_idempotent():
    reg = RoomRegistry()
    reg.join("c1", "hospital_HOSP001")
    assert reg.join("c1", "hospital_HOSP001") is False
    assert reg.members_of("hospital_HOSP001") == {"c1"}


def test_leave_removes_only_that_scope():
    reg = RoomRegistry()
    reg.join("c1", "hospital_HOSP001")
    reg.join("c1", "ambulance_AMB001")
    assert reg.leave("c1", "hospital_HOSP001") is True
    assert "c1" not in reg.members_of("hospital_HOSP001")
    assert reg.scopes_of("c1") == {"ambulance_AMB001"}


def test_leave_unknown_is_noop():
    reg = RoomRegistry()
    assert reg.leave("ghost", "hospital_HOSP001") is False
    reg.join("c1", "hospital_HOSP001")
    assert reg.leave("c2", "hospital_HOSP001") is False
    assert reg.members_of("hospital_HOSP001") == {"c1"}


def test_leave_all_clears_every_scope():
    reg = RoomRegistry()
    reg.join("c1", "hospital_HOSP001")
    reg.join("c1", "ambulance_AMB001")
    reg.join("c2", "hospital_HOSP001")

    left = reg.leave_all("c1")

    assert left == {"hospital_HOSP001", "ambulance_AMB001"}
    assert reg.members_of("hospital_HOSP001") == {"c2"}
    assert reg.members_of("ambulance_AMB001") == frozenset()
    assert reg.scopes_of("c1") == frozenset()
    assert reg.leave_all("c1") == frozenset()


def test_members_of_is_a_snapshot():
    reg = RoomRegistry()
    reg.join("c1", "hospital_HOSP001")
    snap = reg.members_of("hospital_HOSP001")
    reg.join("c2", "hospital_HOSP001")
    assert snap == {"c1"}


def test_unknown_scope_is_empty():
    assert RoomRegistry().members_of("hospital_NOPE") == frozenset()


def test_empty_scopes_are_kept():
    reg = RoomRegistry()
    reg.join("c1", "hospital_HOSP001")
    reg.leave("c1", "hospital_HOSP001")
    assert reg.scope_names() == ["hospital_HOSP001"]


def test_concurrent_joins_and_leaves():
    reg = RoomRegistry()
    ids = [f"c{i}" for i in range(200)]

    def churn(conn_id):
        reg.join(conn_id, "hospital_HOSP001")
        reg.join(conn_id, "hospital_HOSP002")
        reg.leave(conn_id, "hospital_HOSP002")

    threads = [threading.Thread(target=churn, args=(c,)) for c in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert reg.members_of("hospital_HOSP001") == set(ids)
    assert reg.members_of("hospital_HOSP002") == frozenset()
