"""Service for pulling a student's current work on behalf of the teacher.

Each room holds at most one pending transfer. A request fills the slot with a
deadline; the targeted student's reply clears it and is handed to the teacher.
Replies from anyone else, replies to an empty slot and replies after the
deadline are discarded. ``sweep`` turns every overdue request into a timeout
the teacher is told about, so a student who closes the tab never leaves the
teacher waiting.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Any, Callable

from classroom_app.constants.room_constants import DEFAULT_TRANSFER_TIMEOUT_SECONDS
from classroom_app.core.models import PendingTransfer, Room
from classroom_app.core.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class TransferRequestOutcome(Enum):
    ACCEPTED = "accepted"
    ALREADY_PENDING = "already_pending"
    ROOM_NOT_FOUND = "room_not_found"
    TARGET_NOT_FOUND = "target_not_found"


@dataclass(frozen=True, slots=True)
class FeaturedDelivery:
    """A snapshot accepted for forwarding to the teacher."""

    room_code: str
    teacher_id: str
    student_id: str
    student_name: str
    payload: Any


@dataclass(frozen=True, slots=True)
class TransferTimeout:
    room_code: str
    teacher_id: str
    student_id: str
    student_name: str


class SnapshotTransferCoordinator:
    """Runs the ``Idle -> Requested -> Idle`` machine of every room."""

    def __init__(
        self,
        registry: SessionRegistry,
        timeout_seconds: float = DEFAULT_TRANSFER_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("Transfer timeout must be positive.")
        self._registry = registry
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    def request(self, room_code: str, target_id: str) -> TransferRequestOutcome:
        room = self._registry.get_room(room_code)
        if room is None:
            return TransferRequestOutcome.ROOM_NOT_FOUND
        if room.pending_transfer is not None:
            return TransferRequestOutcome.ALREADY_PENDING
        record = room.students.get(target_id)
        if record is None:
            return TransferRequestOutcome.TARGET_NOT_FOUND
        now = self._clock()
        room.pending_transfer = PendingTransfer(
            target_id=target_id,
            target_name=record.name,
            requested_at=now,
            deadline=now + self._timeout_seconds,
        )
        logger.info("Room %s requested the work of %s (%s)", room_code, record.name, target_id)
        return TransferRequestOutcome.ACCEPTED

    def deliver(self, room_code: str, from_id: str, payload: Any) -> FeaturedDelivery | None:
        room = self._registry.get_room(room_code)
        if room is None:
            return None
        pending = room.pending_transfer
        if pending is None or pending.target_id != from_id:
            logger.debug("Discarding unsolicited snapshot from %s in room %s", from_id, room_code)
            return None
        if pending.is_expired(self._clock()):
            logger.debug("Discarding late snapshot from %s in room %s", from_id, room_code)
            return None
        room.pending_transfer = None
        logger.info("Room %s received the work of %s", room_code, pending.target_name)
        return FeaturedDelivery(
            room_code=room_code,
            teacher_id=room.teacher_id,
            student_id=from_id,
            student_name=pending.target_name,
            payload=payload,
        )

    def expire(self, room_code: str) -> TransferTimeout | None:
        """Clear the room's pending transfer if its deadline has passed."""
        room = self._registry.get_room(room_code)
        if room is None:
            return None
        return self._expire_room(room, self._clock())

    def sweep(self) -> list[TransferTimeout]:
        now = self._clock()
        expired = []
        for room in self._registry.rooms():
            timeout = self._expire_room(room, now)
            if timeout is not None:
                expired.append(timeout)
        return expired

    def is_pending(self, room_code: str) -> bool:
        room = self._registry.get_room(room_code)
        return room is not None and room.pending_transfer is not None

    @staticmethod
    def _expire_room(room: Room, now: float) -> TransferTimeout | None:
        pending = room.pending_transfer
        if pending is None or not pending.is_expired(now):
            return None
        room.pending_transfer = None
        logger.info("Transfer from %s in room %s timed out", pending.target_name, room.code)
        return TransferTimeout(
            room_code=room.code,
            teacher_id=room.teacher_id,
            student_id=pending.target_id,
            student_name=pending.target_name,
        )
