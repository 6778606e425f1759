import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from . import hub
from .events import Event, ambulance_room, hospital_room
from .transport import ChannelLayerSender

logger = logging.getLogger(__name__)


async def _ws_error(ws, code: int, message: str):
    """
    Unified error frame.
    Codes: 4xxx for client errors, 5xxx for server errors.
    """
    await ws.send(text_data=json.dumps({"event": "error", "data": {"code": code, "message": message}}))


@dataclass(frozen=True)
class Relay:
    """Re-broadcast rule for a client action.

    ``scoped`` goes to the payload's hospital room, ``public`` to every
    client.  With both set the public copy is the redacted view.
    """
    scoped: Optional[str] = None
    public: Optional[str] = None


RELAYS: dict[str, Relay] = {
    "ambulanceLocation": Relay(scoped="ambulance:location"),
    "bedStatusUpdate": Relay(scoped="bed:update", public="bed:publicUpdate"),
    "doctorAttendance": Relay(scoped="doctor:attendance", public="doctor:publicUpdate"),
    "emergencyUpdate": Relay(scoped="emergency:update"),
    "newEmergency": Relay(scoped="emergency:new"),
    "databaseReset": Relay(public="database:reset"),
    "doctor:gps-check-in": Relay(scoped="doctor:gps-check-in"),
    "doctor:gps-check-out": Relay(scoped="doctor:gps-check-out"),
    "bed:discharged": Relay(scoped="bed:discharged"),
    "bed:cleaned": Relay(scoped="bed:cleaned", public="bed:publicUpdate"),
    "blood:added": Relay(scoped="blood:added"),
    "blood:used": Relay(scoped="blood:used"),
    "blood:low-stock": Relay(scoped="blood:low-stock"),
    "announcement:posted": Relay(public="announcement:posted"),
    "announcement:updated": Relay(public="announcement:updated"),
    "announcement:deleted": Relay(public="announcement:deleted"),
    "leave:requested": Relay(scoped="leave:requested"),
    "leave:updated": Relay(public="leave:updated"),
    "hospitalInfoUpdate": Relay(scoped="hospital:update", public="hospital:publicUpdate"),
}

ROOM_ACTIONS = {
    "joinHospitalRoom": ("join", hospital_room, "hospitalId"),
    "joinAmbulanceRoom": ("join", ambulance_room, "ambulanceId"),
    "leaveHospitalRoom": ("leave", hospital_room, "hospitalId"),
    "leaveAmbulanceRoom": ("leave", ambulance_room, "ambulanceId"),
}


def _room_key(data: Any, field: str) -> Optional[str]:
    # clients send the bare id; an object carrying it is accepted too
    if isinstance(data, dict):
        data = data.get(field)
    if isinstance(data, (str, int)) and not isinstance(data, bool):
        key = str(data).strip()
        return key or None
    return None


def _hospital_of(data: Any) -> Optional[str]:
    return _room_key(data, "hospitalId") if isinstance(data, dict) else None


def ambulance_status(data: dict, status: Optional[str], location: Any) -> dict:
    return {
        "ambulanceId": data.get("ambulanceId"),
        "status": status,
        "location": location,
        "lastSeen": timezone.now().isoformat(),
    }


class NetworkConsumer(AsyncWebsocketConsumer):
    """One client session on ``/ws/network/``.

    Frames in: ``{"action": name, "data": payload}``.
    Frames out: ``{"event": name, "data": payload}``.
    """

    connection_id: Optional[str] = None

    async def connect(self):
        if self.channel_layer is None:
            await self.close(code=1011)
            return
        conn = hub.connections.open(ChannelLayerSender(self.channel_layer, self.channel_name))
        self.connection_id = conn.id
        await self.accept()
        hub.connections.accept(conn.id)
        await self.send(text_data=json.dumps({"event": "connected", "data": {"connectionId": conn.id}}))

    async def disconnect(self, close_code):
        if self.connection_id:
            hub.connections.close(self.connection_id)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return

        try:
            frame = json.loads(text_data)
        except ValueError:
            await _ws_error(self, 4000, "invalid_json")
            return

        if not isinstance(frame, dict) or not isinstance(frame.get("action"), str):
            await _ws_error(self, 4001, "invalid_payload")
            return

        action = frame["action"]
        data = frame.get("data")

        if action in ROOM_ACTIONS:
            await self._room_action(action, data)
        elif action in RELAYS:
            await self._relay(action, RELAYS[action], data)
        elif action == "notification":
            await self._notification(data)
        elif action in ("ambulance:heartbeat", "ambulance:statusChange", "ambulance:disconnect"):
            await self._ambulance_status(action, data)
        else:
            await _ws_error(self, 4002, "unsupported_action")

    async def _room_action(self, action: str, data: Any):
        op, room_for, field = ROOM_ACTIONS[action]
        key = _room_key(data, field)
        if key is None:
            await _ws_error(self, 4003, f"missing_{field}")
            return
        room = room_for(key)
        if op == "join":
            hub.connections.join(self.connection_id, room)
            await self.send(text_data=json.dumps({"event": "room:joined", "data": {"room": room}}))
        else:
            hub.connections.leave(self.connection_id, room)
            await self.send(text_data=json.dumps({"event": "room:left", "data": {"room": room}}))

    async def _relay(self, action: str, relay: Relay, data: Any):
        if relay.scoped:
            hospital_id = _hospital_of(data)
            if hospital_id is None:
                await _ws_error(self, 4003, "missing_hospitalId")
                return
            room = hospital_room(hospital_id)
            if relay.public:
                await hub.broadcaster.broadcast_dual(room, relay.scoped, relay.public, data)
            else:
                await hub.broadcaster.broadcast_to_scope(room, Event(relay.scoped, data))
        else:
            await hub.broadcaster.broadcast_to_all(Event(relay.public, data))
        logger.debug("relayed %s from %s", action, self.connection_id)

    async def _notification(self, data: Any):
        hospital_id = _hospital_of(data)
        if hospital_id:
            await hub.broadcaster.broadcast_to_scope(hospital_room(hospital_id), Event("notification", data))
        else:
            await hub.broadcaster.broadcast_to_all(Event("notification", data))

    async def _ambulance_status(self, action: str, data: Any):
        hospital_id = _hospital_of(data)
        if hospital_id is None:
            await _ws_error(self, 4003, "missing_hospitalId")
            return
        if action == "ambulance:heartbeat":
            payload = ambulance_status(data, data.get("status") or "On Duty", data.get("location"))
        elif action == "ambulance:statusChange":
            payload = ambulance_status(data, data.get("status"), data.get("location"))
        else:
            payload = ambulance_status(data, "Offline", None)
        await hub.broadcaster.broadcast_to_scope(
            hospital_room(hospital_id), Event("ambulance:statusUpdate", payload)
        )

    # Handler for realtime.event messages written by ChannelLayerSender
    async def realtime_event(self, message):
        await self.send(text_data=json.dumps(
            {"event": message["event"], "data": message.get("data")},
            cls=DjangoJSONEncoder,
        ))
