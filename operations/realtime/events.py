"""Event type and room naming shared by the broadcaster and its callers."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

HOSPITAL_ROOM_PREFIX = "hospital_"
AMBULANCE_ROOM_PREFIX = "ambulance_"

# Keys stripped from the public variant of a dual emit
PUBLIC_REDACTED_FIELDS = frozenset({"occupiedBy", "patientName", "patient"})


def hospital_room(hospital_id: str) -> str:
    return f"{HOSPITAL_ROOM_PREFIX}{hospital_id}"


def ambulance_room(ambulance_id: str) -> str:
    return f"{AMBULANCE_ROOM_PREFIX}{ambulance_id}"


@dataclass(frozen=True)
class Event:
    """A named, transient payload.

    The payload is frozen behind a read-only mapping so one instance can be
    handed to many recipients.  ``as_message`` returns the wire frame.
    """
    name: str
    payload: Any = None

    def __post_init__(self):
        if isinstance(self.payload, Mapping):
            object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    def as_message(self) -> dict[str, Any]:
        data = dict(self.payload) if isinstance(self.payload, Mapping) else self.payload
        return {"event": self.name, "data": data}


def public_view(payload: Any) -> Any:
    """Return ``payload`` without patient identifying fields."""
    if not isinstance(payload, Mapping):
        return payload
    return {k: v for k, v in payload.items() if k not in PUBLIC_REDACTED_FIELDS}
