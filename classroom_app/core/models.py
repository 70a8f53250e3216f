"""Domain models for the classroom coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Role bound to a connection for its whole lifetime."""

    TEACHER = "teacher"
    STUDENT = "student"


class StudentStatus(str, Enum):
    """What a student is currently doing in the lab."""

    IDLE = "idle"
    COLLECTING = "collecting"
    TRAINING = "training"
    PREDICTING = "predicting"
    CLUSTERING = "clustering"


@dataclass(slots=True)
class StudentRecord:
    """Live status of one student inside a room."""

    name: str
    status: StudentStatus = StudentStatus.IDLE
    metrics: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PendingTransfer:
    """Outstanding request for a student's current work."""

    target_id: str
    target_name: str
    requested_at: float
    deadline: float

    def is_expired(self, now: float) -> bool:
        return now >= self.deadline


@dataclass(slots=True)
class Room:
    """State of one classroom, owned by the session registry."""

    code: str
    teacher_id: str
    attention_mode: bool = False
    # dicts keep insertion order, so the roster follows join order
    students: dict[str, StudentRecord] = field(default_factory=dict)
    pending_transfer: PendingTransfer | None = None


@dataclass(frozen=True, slots=True)
class Binding:
    """Entry of the connection index: the room and role of one connection."""

    room_code: str
    role: Role


@dataclass(frozen=True, slots=True)
class JoinResult:
    code: str
    attention_mode: bool


@dataclass(frozen=True, slots=True)
class LeaveResult:
    """Outcome of removing a connection from its room."""

    code: str
    was_teacher: bool
    # Students unbound because their teacher left and the room was destroyed
    evicted_ids: tuple[str, ...] = ()
