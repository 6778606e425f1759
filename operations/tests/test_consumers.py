import pytest
from channels.testing import WebsocketCommunicator

from operations.realtime import hub
from operations.realtime.consumers import NetworkConsumer


async def _connect():
    comm = WebsocketCommunicator(NetworkConsumer.as_asgi(), "/ws/network/")
    connected, _ = await comm.connect()
    assert connected
    hello = await comm.receive_json_from()
    return comm, hello


async def _join(comm, hospital_id):
    await comm.send_json_to({"action": "joinHospitalRoom", "data": hospital_id})
    return await comm.receive_json_from()


@pytest.mark.asyncio
async def test_connect_announces_connection_id():
    comm, hello = await _connect()
    assert hello["event"] == "connected"
    conn_id = hello["data"]["connectionId"]
    assert hub.connections.get(conn_id).is_connected
    await comm.disconnect()


@pytest.mark.asyncio
async def test_join_is_acknowledged():
    comm, _ = await _connect()
    ack = await _join(comm, "HOSP001")
    assert ack == {"event": "room:joined", "data": {"room": "hospital_HOSP001"}}

    await comm.send_json_to({"action": "joinAmbulanceRoom", "data": {"ambulanceId": "AMB001"}})
    ack = await comm.receive_json_from()
    assert ack["data"]["room"] == "ambulance_AMB001"
    await comm.disconnect()


@pytest.mark.asyncio
async def test_scoped_event_stays_in_its_room():
    a, _ = await _connect()
    b, _ = await _connect()
    await _join(a, "HOSP001")
    await _join(b, "HOSP002")

    await a.send_json_to({"action": "newEmergency", "data": {"hospitalId": "HOSP001", "emergencyId": "EMG-1"}})

    frame = await a.receive_json_from()
    assert frame == {"event": "emergency:new", "data": {"hospitalId": "HOSP001", "emergencyId": "EMG-1"}}
    assert await b.receive_nothing()
    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
async def test_bed_update_goes_dual_with_redaction():
    a, _ = await _connect()
    b, _ = await _connect()
    await _join(a, "HOSP001")
    await _join(b, "HOSP002")

    await a.send_json_to({"action": "bedStatusUpdate", "data": {
        "hospitalId": "HOSP001", "bedId": "HOSP001-W1-B01", "status": "Occupied", "occupiedBy": "R. Das",
    }})

    staff = await a.receive_json_from()
    assert staff["event"] == "bed:update"
    assert staff["data"]["occupiedBy"] == "R. Das"
    mirror = await a.receive_json_from()
    assert mirror["event"] == "bed:publicUpdate"

    public = await b.receive_json_from()
    assert public["event"] == "bed:publicUpdate"
    assert public["data"]["status"] == "Occupied"
    assert "occupiedBy" not in public["data"]
    assert await b.receive_nothing()
    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
async def test_left_room_stops_receiving():
    a, _ = await _connect()
    await _join(a, "HOSP001")
    await a.send_json_to({"action": "leaveHospitalRoom", "data": "HOSP001"})
    assert (await a.receive_json_from())["event"] == "room:left"

    await a.send_json_to({"action": "newEmergency", "data": {"hospitalId": "HOSP001"}})
    assert await a.receive_nothing()
    await a.disconnect()


@pytest.mark.asyncio
async def test_public_only_relay_reaches_everyone():
    a, _ = await _connect()
    b, _ = await _connect()

    await a.send_json_to({"action": "databaseReset", "data": {"message": "reset"}})

    assert (await a.receive_json_from())["event"] == "database:reset"
    assert (await b.receive_json_from())["event"] == "database:reset"
    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
@pytest.mark.parametrize("raw, code", [
    ("{not json", 4000),
    ("[1, 2]", 4001),
    ('{"action": "teleport", "data": {}}', 4002),
    ('{"action": "joinHospitalRoom", "data": {}}', 4003),
    ('{"action": "bedStatusUpdate", "data": {"bedId": "B1"}}', 4003),
])
async def test_bad_frames_get_error_codes(raw, code):
    comm, _ = await _connect()
    await comm.send_to(text_data=raw)
    frame = await comm.receive_json_from()
    assert frame["event"] == "error"
    assert frame["data"]["code"] == code
    await comm.disconnect()


@pytest.mark.asyncio
async def test_heartbeat_defaults_to_on_duty():
    comm, _ = await _connect()
    await _join(comm, "HOSP001")
    await comm.send_json_to({"action": "ambulance:heartbeat", "data": {
        "hospitalId": "HOSP001", "ambulanceId": "AMB001", "location": {"lat": 21.25, "lng": 81.63},
    }})

    frame = await comm.receive_json_from()
    assert frame["event"] == "ambulance:statusUpdate"
    assert frame["data"]["status"] == "On Duty"
    assert frame["data"]["ambulanceId"] == "AMB001"
    assert frame["data"]["lastSeen"]

    await comm.send_json_to({"action": "ambulance:disconnect", "data": {"hospitalId": "HOSP001", "ambulanceId": "AMB001"}})
    frame = await comm.receive_json_from()
    assert frame["data"]["status"] == "Offline"
    assert frame["data"]["location"] is None
    await comm.disconnect()


@pytest.mark.asyncio
async def test_notification_without_hospital_goes_to_all():
    a, _ = await _connect()
    b, _ = await _connect()
    await a.send_json_to({"action": "notification", "data": {"text": "drill at noon"}})
    assert (await b.receive_json_from())["event"] == "notification"
    await a.disconnect()
    await b.disconnect()


@pytest.mark.asyncio
async def test_disconnect_leaves_every_room():
    comm, hello = await _connect()
    conn_id = hello["data"]["connectionId"]
    await _join(comm, "HOSP001")
    await comm.send_json_to({"action": "joinAmbulanceRoom", "data": "AMB001"})
    await comm.receive_json_from()

    await comm.disconnect()

    assert hub.connections.get(conn_id) is None
    assert hub.registry.members_of("hospital_HOSP001") == frozenset()
    assert hub.registry.members_of("ambulance_AMB001") == frozenset()
