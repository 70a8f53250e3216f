"""Routes inbound protocol messages to the classroom services.

The gateway knows nothing about sockets: it takes a connection id and a parsed
message, applies it through the registry and the transfer coordinator, and
returns the outbound messages in the order they must be delivered.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError

from classroom_app.constants.protocol_constants import (
    ERR_ALREADY_HOSTING,
    ERR_INVALID_ROOM_CODE,
    ERR_MALFORMED_MESSAGE,
    ERR_NOT_ROOM_TEACHER,
    ERR_ROLE_FORBIDDEN,
    ERR_STUDENT_NOT_FOUND,
    ERR_TRANSFER_PENDING,
    ERR_TRANSFER_TIMEOUT,
    EVT_CREATE_ROOM,
    EVT_ERROR,
    EVT_JOIN_ROOM,
    EVT_JOINED_ROOM,
    EVT_KICK_STUDENT,
    EVT_KICKED,
    EVT_LEAVE_ROOM,
    EVT_LEFT_ROOM,
    EVT_REQUEST_MODEL,
    EVT_ROOM_CLOSED,
    EVT_ROOM_CREATED,
    EVT_STUDENT_FEATURED_DATA,
    EVT_STUDENT_MODEL_DATA,
    EVT_TOGGLE_ATTENTION,
    EVT_TRANSFER_TIMEOUT,
    EVT_UPDATE_STATUS,
)
from classroom_app.core.models import LeaveResult, Role
from classroom_app.core.protocol import (
    CreateRoomMessage,
    InboundMessage,
    JoinRoomMessage,
    KickStudentMessage,
    LeaveRoomMessage,
    Outbound,
    RequestModelMessage,
    StudentModelDataMessage,
    ToggleAttentionMessage,
    UpdateStatusMessage,
    inbound_events,
    parse_inbound,
)
from classroom_app.core.services.broadcast_dispatcher import BroadcastDispatcher
from classroom_app.core.services.session_registry import SessionRegistry
from classroom_app.core.services.transfer_coordinator import (
    SnapshotTransferCoordinator,
    TransferRequestOutcome,
    TransferTimeout,
)

logger = logging.getLogger(__name__)

# Role each event requires; None means any connection may send it.
_REQUIRED_ROLES: dict[str, Role | None] = {
    EVT_CREATE_ROOM: Role.TEACHER,
    EVT_TOGGLE_ATTENTION: Role.TEACHER,
    EVT_KICK_STUDENT: Role.TEACHER,
    EVT_REQUEST_MODEL: Role.TEACHER,
    EVT_JOIN_ROOM: Role.STUDENT,
    EVT_UPDATE_STATUS: Role.STUDENT,
    EVT_STUDENT_MODEL_DATA: Role.STUDENT,
    EVT_LEAVE_ROOM: None,
}


class MessageRejected(Exception):
    """Raised by a handler to refuse a message without touching any state.

    A rejection without a message is dropped silently.
    """

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "")
        self.message = message


class ConnectionGateway:
    """Binds connections to roles and rooms and turns messages into replies."""

    def __init__(
        self,
        registry: SessionRegistry,
        transfers: SnapshotTransferCoordinator,
        dispatcher: BroadcastDispatcher,
    ) -> None:
        self._registry = registry
        self._transfers = transfers
        self._dispatcher = dispatcher
        self._roles: dict[str, Role] = {}
        self._handlers: dict[str, Callable[[str, Any], list[Outbound]]] = {
            EVT_CREATE_ROOM: self._on_create_room,
            EVT_JOIN_ROOM: self._on_join_room,
            EVT_TOGGLE_ATTENTION: self._on_toggle_attention,
            EVT_KICK_STUDENT: self._on_kick_student,
            EVT_UPDATE_STATUS: self._on_update_status,
            EVT_REQUEST_MODEL: self._on_request_model,
            EVT_STUDENT_MODEL_DATA: self._on_student_model_data,
            EVT_LEAVE_ROOM: self._on_leave_room,
        }
        missing = inbound_events() - self._handlers.keys()
        if missing:
            raise RuntimeError(f"No handler for inbound event(s): {sorted(missing)}")

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    def role_of(self, conn_id: str) -> Role | None:
        return self._roles.get(conn_id)

    # --- Entry points ---

    def handle_raw(self, conn_id: str, raw: str | bytes) -> list[Outbound]:
        """Parse one frame and handle it; malformed frames get an error reply."""
        try:
            message = parse_inbound(raw)
        except ValidationError as exc:
            logger.warning("Malformed frame from %s: %d error(s)", conn_id, exc.error_count())
            return [self._error(conn_id, ERR_MALFORMED_MESSAGE)]
        return self.handle(conn_id, message)

    def handle(self, conn_id: str, message: InboundMessage) -> list[Outbound]:
        event = message.event
        required = _REQUIRED_ROLES[event]
        role = self._roles.get(conn_id)
        if required is not None and role is not None and role is not required:
            logger.warning("Rejected %s from %s connection %s", event, role.value, conn_id)
            return [self._error(conn_id, ERR_ROLE_FORBIDDEN.format(event=event, role=role.value))]
        try:
            return self._handlers[event](conn_id, message)
        except MessageRejected as exc:
            if exc.message is None:
                logger.debug("Dropped %s from unbound connection %s", event, conn_id)
                return []
            return [self._error(conn_id, exc.message)]

    def disconnect(self, conn_id: str) -> list[Outbound]:
        """Implicit leave when the transport goes away."""
        _, outbound = self._leave(conn_id)
        self._roles.pop(conn_id, None)
        logger.debug("Connection %s closed", conn_id)
        return outbound

    def sweep(self) -> list[Outbound]:
        return [self._timeout_notice(timeout) for timeout in self._transfers.sweep()]

    # --- Teacher handlers ---

    def _on_create_room(self, conn_id: str, message: CreateRoomMessage) -> list[Outbound]:
        if self._registry.binding(conn_id) is not None:
            raise MessageRejected(ERR_ALREADY_HOSTING)
        code = self._registry.create_room(conn_id)
        self._roles[conn_id] = Role.TEACHER
        return [Outbound(conn_id, EVT_ROOM_CREATED, code)]

    def _on_toggle_attention(self, conn_id: str, message: ToggleAttentionMessage) -> list[Outbound]:
        code = self._owned_room(conn_id, message.data.code)
        enabled = message.data.enabled
        self._registry.set_attention(code, enabled)
        return [
            *self._dispatcher.attention_change(code, enabled),
            *self._dispatcher.broadcast(code),
        ]

    def _on_kick_student(self, conn_id: str, message: KickStudentMessage) -> list[Outbound]:
        code = self._owned_room(conn_id, message.data.code)
        student_id = message.data.student_id
        if not self._registry.kick(code, student_id):
            raise MessageRejected(ERR_STUDENT_NOT_FOUND)
        return [Outbound(student_id, EVT_KICKED), *self._dispatcher.broadcast(code)]

    def _on_request_model(self, conn_id: str, message: RequestModelMessage) -> list[Outbound]:
        code = self._bound_room(conn_id)
        student_id = message.data.student_id
        outbound = self._expire(code)
        outcome = self._transfers.request(code, student_id)
        if outcome is TransferRequestOutcome.ALREADY_PENDING:
            outbound.append(self._error(conn_id, ERR_TRANSFER_PENDING))
        elif outcome is TransferRequestOutcome.TARGET_NOT_FOUND:
            outbound.append(self._error(conn_id, ERR_STUDENT_NOT_FOUND))
        elif outcome is TransferRequestOutcome.ACCEPTED:
            outbound.append(Outbound(student_id, EVT_REQUEST_MODEL))
        return outbound

    # --- Student handlers ---

    def _on_join_room(self, conn_id: str, message: JoinRoomMessage) -> list[Outbound]:
        code = message.data.code
        if self._registry.get_room(code) is None:
            logger.info("%s tried to join unknown room %s", conn_id, code)
            raise MessageRejected(ERR_INVALID_ROOM_CODE)
        _, outbound = self._leave(conn_id)
        result = self._registry.join_room(code, conn_id, message.data.name)
        if result is None:
            raise MessageRejected(ERR_INVALID_ROOM_CODE)
        self._roles[conn_id] = Role.STUDENT
        outbound.append(
            Outbound(conn_id, EVT_JOINED_ROOM, {"code": result.code, "attentionMode": result.attention_mode})
        )
        outbound.extend(self._dispatcher.broadcast(code))
        return outbound

    def _on_update_status(self, conn_id: str, message: UpdateStatusMessage) -> list[Outbound]:
        code = self._registry.update_status(conn_id, message.data.status, message.data.metrics)
        if code is None:
            raise MessageRejected()
        return self._dispatcher.broadcast(code)

    def _on_student_model_data(self, conn_id: str, message: StudentModelDataMessage) -> list[Outbound]:
        code = self._bound_room(conn_id)
        outbound = self._expire(code)
        delivery = self._transfers.deliver(code, conn_id, message.data)
        if delivery is not None:
            outbound.append(
                Outbound(
                    delivery.teacher_id,
                    EVT_STUDENT_FEATURED_DATA,
                    {
                        "studentId": delivery.student_id,
                        "studentName": delivery.student_name,
                        "payload": delivery.payload,
                    },
                )
            )
        return outbound

    # --- Shared handlers ---

    def _on_leave_room(self, conn_id: str, message: LeaveRoomMessage) -> list[Outbound]:
        result, outbound = self._leave(conn_id)
        if result is None:
            raise MessageRejected()
        return [Outbound(conn_id, EVT_LEFT_ROOM, result.code), *outbound]

    # --- Helpers ---

    def _leave(self, conn_id: str) -> tuple[LeaveResult | None, list[Outbound]]:
        result = self._registry.leave(conn_id)
        if result is None:
            return None, []
        if result.was_teacher:
            return result, [Outbound(student_id, EVT_ROOM_CLOSED, result.code) for student_id in result.evicted_ids]
        return result, self._dispatcher.broadcast(result.code)

    def _bound_room(self, conn_id: str) -> str:
        binding = self._registry.binding(conn_id)
        if binding is None:
            raise MessageRejected()
        return binding.room_code

    def _owned_room(self, conn_id: str, code: str) -> str:
        bound_code = self._bound_room(conn_id)
        if bound_code != code.strip().upper():
            logger.warning("%s addressed room %s but teaches %s", conn_id, code, bound_code)
            raise MessageRejected(ERR_NOT_ROOM_TEACHER)
        return bound_code

    def _expire(self, code: str) -> list[Outbound]:
        timeout = self._transfers.expire(code)
        return [] if timeout is None else [self._timeout_notice(timeout)]

    @staticmethod
    def _timeout_notice(timeout: TransferTimeout) -> Outbound:
        return Outbound(
            timeout.teacher_id,
            EVT_TRANSFER_TIMEOUT,
            {
                "studentId": timeout.student_id,
                "studentName": timeout.student_name,
                "message": ERR_TRANSFER_TIMEOUT.format(name=timeout.student_name),
            },
        )

    @staticmethod
    def _error(conn_id: str, message: str) -> Outbound:
        return Outbound(conn_id, EVT_ERROR, message)


def build_gateway(
    timeout_seconds: float,
    teacher_only_roster: bool = False,
    registry: SessionRegistry | None = None,
    clock: Callable[[], float] | None = None,
) -> ConnectionGateway:
    """Wire a registry, transfer coordinator and dispatcher into a gateway."""
    registry = registry or SessionRegistry()
    if clock is None:
        transfers = SnapshotTransferCoordinator(registry, timeout_seconds)
    else:
        transfers = SnapshotTransferCoordinator(registry, timeout_seconds, clock=clock)
    dispatcher = BroadcastDispatcher(registry, teacher_only=teacher_only_roster)
    return ConnectionGateway(registry, transfers, dispatcher)
