"""Wire schemas for the classroom WebSocket protocol.

Every frame is a JSON object ``{"event": <name>, "data": <payload>}``. Inbound
frames are parsed into a closed union of message models discriminated on
``event``; outbound frames are built from :class:`Outbound` values produced by
the gateway. Payload keys are camelCase to match the browser client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from classroom_app.core.models import StudentStatus


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class _View(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# --- Views ---

class StudentView(_View):
    """Read-only roster entry sent to clients."""

    id: str
    name: str
    status: StudentStatus
    metrics: dict[str, Any]


class RoomView(_View):
    """Full, self-contained room state sent on every broadcast."""

    code: str
    attention_mode: bool = Field(alias="attentionMode")
    students: tuple[StudentView, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- Inbound payloads ---

class JoinRoomData(_Payload):
    code: str
    name: str = Field(min_length=1, max_length=64)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.upper()


class ToggleAttentionData(_Payload):
    code: str
    enabled: bool


class KickStudentData(_Payload):
    code: str
    student_id: str = Field(alias="studentId")


class UpdateStatusData(_Payload):
    status: StudentStatus | None = None
    metrics: dict[str, Any] | None = None


class RequestModelData(_Payload):
    student_id: str = Field(alias="studentId")


# --- Inbound messages ---

class CreateRoomMessage(BaseModel):
    event: Literal["create_room"]
    data: Any = None


class JoinRoomMessage(BaseModel):
    event: Literal["join_room"]
    data: JoinRoomData


class ToggleAttentionMessage(BaseModel):
    event: Literal["toggle_attention"]
    data: ToggleAttentionData


class KickStudentMessage(BaseModel):
    event: Literal["kick_student"]
    data: KickStudentData


class UpdateStatusMessage(BaseModel):
    event: Literal["update_status"]
    data: UpdateStatusData = Field(default_factory=UpdateStatusData)


class RequestModelMessage(BaseModel):
    event: Literal["request_model"]
    data: RequestModelData


class StudentModelDataMessage(BaseModel):
    # The snapshot is opaque and forwarded verbatim.
    event: Literal["student_model_data"]
    data: Any = None


class LeaveRoomMessage(BaseModel):
    event: Literal["leave_room"]
    data: Any = None


InboundMessage = Annotated[
    Union[
        CreateRoomMessage,
        JoinRoomMessage,
        ToggleAttentionMessage,
        KickStudentMessage,
        UpdateStatusMessage,
        RequestModelMessage,
        StudentModelDataMessage,
        LeaveRoomMessage,
    ],
    Field(discriminator="event"),
]

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def parse_inbound(raw: str | bytes) -> InboundMessage:
    """Parse one JSON frame. Raises ``pydantic.ValidationError`` on bad input."""
    return _inbound_adapter.validate_json(raw)


def parse_inbound_object(obj: Any) -> InboundMessage:
    return _inbound_adapter.validate_python(obj)


# --- Outbound ---

@dataclass(frozen=True, slots=True)
class Outbound:
    """One message addressed to one connection."""

    target_id: str
    event: str
    data: Any = None

    def to_frame(self) -> dict[str, Any]:
        return {"event": self.event, "data": self.data}


def inbound_events() -> frozenset[str]:
    """Every event name the inbound union accepts."""
    members = get_args(get_args(InboundMessage)[0])
    return frozenset(get_args(model.model_fields["event"].annotation)[0] for model in members)
