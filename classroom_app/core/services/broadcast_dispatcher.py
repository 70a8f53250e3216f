"""Fans the full room view out to the members of a room."""

from __future__ import annotations

from typing import Any

from classroom_app.constants.protocol_constants import (
    EVT_ATTENTION_MODE_CHANGE,
    EVT_ROOM_STATE_UPDATE,
)
from classroom_app.core.protocol import Outbound
from classroom_app.core.services.session_registry import SessionRegistry


class BroadcastDispatcher:
    """Addresses room-wide events to every connection bound to a room.

    The whole view is sent every time rather than a delta, so a client that
    missed an update is corrected by the next one.
    """

    def __init__(self, registry: SessionRegistry, teacher_only: bool = False) -> None:
        self._registry = registry
        self._teacher_only = teacher_only

    def broadcast(self, room_code: str) -> list[Outbound]:
        view = self._registry.snapshot(room_code)
        if view is None:
            return []
        payload = view.to_payload()
        recipients = self._registry.member_ids(room_code)
        if self._teacher_only:
            recipients = recipients[:1]
        return [Outbound(conn_id, EVT_ROOM_STATE_UPDATE, payload) for conn_id in recipients]

    def attention_change(self, room_code: str, enabled: bool) -> list[Outbound]:
        return self.to_room(room_code, EVT_ATTENTION_MODE_CHANGE, enabled)

    def to_room(self, room_code: str, event: str, data: Any = None) -> list[Outbound]:
        return [Outbound(conn_id, event, data) for conn_id in self._registry.member_ids(room_code)]
