"""Emit events from synchronous Django code (REST views, commands).

These helpers never raise: a broadcast failure is logged and the
mutation that triggered it still succeeds.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from asgiref.sync import async_to_sync
from django.core.serializers.json import DjangoJSONEncoder

from . import hub
from .events import Event, ambulance_room, hospital_room

logger = logging.getLogger(__name__)


def _wire(payload: Any) -> Any:
    # dates, decimals and UUIDs become strings so any channel layer can carry them
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


def emit_to_scope(scope: str, event: str, payload: Any) -> int:
    try:
        return async_to_sync(hub.broadcaster.broadcast_to_scope)(scope, Event(event, _wire(payload)))
    except Exception:
        logger.exception("emit %s to %s failed", event, scope)
        return 0


def emit_to_all(event: str, payload: Any) -> int:
    try:
        return async_to_sync(hub.broadcaster.broadcast_to_all)(Event(event, _wire(payload)))
    except Exception:
        logger.exception("global emit %s failed", event)
        return 0


def emit_to_hospital(hospital_id: str, event: str, payload: Any) -> int:
    return emit_to_scope(hospital_room(hospital_id), event, payload)


def emit_to_ambulance(ambulance_id: str, event: str, payload: Any) -> int:
    return emit_to_scope(ambulance_room(ambulance_id), event, payload)


def emit_dual(hospital_id: str, scoped_event: str, public_event: str, payload: Any) -> None:
    """Staff view to the hospital room, redacted public view to everyone."""
    try:
        async_to_sync(hub.broadcaster.broadcast_dual)(
            hospital_room(hospital_id), scoped_event, public_event, _wire(payload)
        )
    except Exception:
        logger.exception("dual emit %s/%s for %s failed", scoped_event, public_event, hospital_id)
