"""Service owning every live room and the connection index."""

from __future__ import annotations

import logging
from typing import Any

from classroom_app.core.code_generator import RoomCodeGenerator
from classroom_app.core.models import (
    Binding,
    JoinResult,
    LeaveResult,
    Role,
    Room,
    StudentRecord,
    StudentStatus,
)
from classroom_app.core.protocol import RoomView, StudentView

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps room codes to rooms and connections to their (room, role) binding.

    Lookups that miss return ``None`` (or ``False``) instead of raising; the
    gateway decides whether the caller hears about it.
    """

    def __init__(self, code_generator: RoomCodeGenerator | None = None) -> None:
        self._code_generator = code_generator or RoomCodeGenerator()
        self._rooms: dict[str, Room] = {}
        self._bindings: dict[str, Binding] = {}

    # --- Room lifecycle ---

    def create_room(self, teacher_id: str) -> str:
        """Open a new room hosted by the given connection and return its code."""
        # A connection is never indexed under two rooms.
        self.leave(teacher_id)
        code = self._code_generator.generate(self._rooms.__contains__)
        self._rooms[code] = Room(code=code, teacher_id=teacher_id)
        self._bindings[teacher_id] = Binding(room_code=code, role=Role.TEACHER)
        logger.info("Room %s created by %s", code, teacher_id)
        return code

    def destroy_room(self, code: str) -> list[str]:
        """Remove a room and unbind its connections. Returns the evicted student ids."""
        room = self._rooms.pop(code, None)
        if room is None:
            return []
        self._bindings.pop(room.teacher_id, None)
        evicted = list(room.students)
        for student_id in evicted:
            self._bindings.pop(student_id, None)
        if room.pending_transfer is not None:
            logger.info("Dropping pending transfer of room %s", code)
        logger.info("Room %s destroyed, %d student(s) evicted", code, len(evicted))
        return evicted

    # --- Membership ---

    def join_room(self, code: str, student_id: str, name: str) -> JoinResult | None:
        """Add a student to an existing room; returns None for an unknown code."""
        if code not in self._rooms:
            return None
        self.leave(student_id)
        # Leaving may have destroyed the room if the caller was its teacher.
        room = self._rooms.get(code)
        if room is None:
            return None
        room.students[student_id] = StudentRecord(name=name)
        self._bindings[student_id] = Binding(room_code=code, role=Role.STUDENT)
        logger.info("%s joined room %s as %r", student_id, code, name)
        return JoinResult(code=code, attention_mode=room.attention_mode)

    def leave(self, conn_id: str) -> LeaveResult | None:
        """Unbind a connection. A teacher leaving destroys the room."""
        binding = self._bindings.get(conn_id)
        if binding is None:
            return None
        if binding.role is Role.TEACHER:
            evicted = self.destroy_room(binding.room_code)
            return LeaveResult(
                code=binding.room_code,
                was_teacher=True,
                evicted_ids=tuple(evicted),
            )
        del self._bindings[conn_id]
        room = self._rooms.get(binding.room_code)
        if room is not None:
            room.students.pop(conn_id, None)
        logger.info("%s left room %s", conn_id, binding.room_code)
        return LeaveResult(code=binding.room_code, was_teacher=False)

    def kick(self, code: str, student_id: str) -> bool:
        """Remove a student from a room. Returns False if they are not in it."""
        room = self._rooms.get(code)
        if room is None or student_id not in room.students:
            return False
        del room.students[student_id]
        self._bindings.pop(student_id, None)
        logger.info("%s kicked from room %s", student_id, code)
        return True

    # --- Room state ---

    def update_status(
        self,
        conn_id: str,
        status: StudentStatus | None = None,
        metrics: dict[str, Any] | None = None,
    ) -> str | None:
        """Merge a status report into the caller's record and return its room code."""
        record = self.get_student(conn_id)
        if record is None:
            return None
        if status is not None:
            record.status = status
        if metrics is not None:
            record.metrics = dict(metrics)
        return self._bindings[conn_id].room_code

    def set_attention(self, code: str, enabled: bool) -> bool:
        """Switch attention mode for a room."""
        room = self._rooms.get(code)
        if room is None:
            return False
        room.attention_mode = enabled
        logger.info("Attention mode of room %s set to %s", code, enabled)
        return True

    def snapshot(self, code: str) -> RoomView | None:
        """Immutable view of a room for broadcasting."""
        room = self._rooms.get(code)
        if room is None:
            return None
        return RoomView(
            code=room.code,
            attention_mode=room.attention_mode,
            students=tuple(
                StudentView(
                    id=student_id,
                    name=record.name,
                    status=record.status,
                    metrics=dict(record.metrics),
                )
                for student_id, record in room.students.items()
            ),
        )

    # --- Lookups ---

    def binding(self, conn_id: str) -> Binding | None:
        return self._bindings.get(conn_id)

    def get_room(self, code: str) -> Room | None:
        return self._rooms.get(code)

    def get_student(self, conn_id: str) -> StudentRecord | None:
        binding = self._bindings.get(conn_id)
        if binding is None or binding.role is not Role.STUDENT:
            return None
        room = self._rooms.get(binding.room_code)
        if room is None:
            return None
        return room.students.get(conn_id)

    def member_ids(self, code: str) -> list[str]:
        """Teacher first, then students in join order."""
        room = self._rooms.get(code)
        if room is None:
            return []
        return [room.teacher_id, *room.students]

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def room_count(self) -> int:
        return len(self._rooms)

    def connection_count(self) -> int:
        return len(self._bindings)
