"""Tests for the snapshot transfer state machine."""

import pytest

from classroom_app.core.services.transfer_coordinator import (
    SnapshotTransferCoordinator,
    TransferRequestOutcome,
)


@pytest.fixture
def room(registry):
    code = registry.create_room("teacher")
    registry.join_room(code, "alice", "Alice")
    registry.join_room(code, "bob", "Bob")
    return code


class TestRequest:
    def test_accepted_request_sets_deadline(self, transfers, registry, room, clock):
        assert transfers.request(room, "alice") is TransferRequestOutcome.ACCEPTED
        pending = registry.get_room(room).pending_transfer
        assert pending.target_id == "alice"
        assert pending.target_name == "Alice"
        assert pending.deadline == clock.now + 10

    def test_second_request_is_rejected_and_keeps_deadline(self, transfers, registry, room, clock):
        transfers.request(room, "alice")
        deadline = registry.get_room(room).pending_transfer.deadline
        clock.advance(5)
        assert transfers.request(room, "bob") is TransferRequestOutcome.ALREADY_PENDING
        assert transfers.request(room, "alice") is TransferRequestOutcome.ALREADY_PENDING
        pending = registry.get_room(room).pending_transfer
        assert pending.target_id == "alice"
        assert pending.deadline == deadline

    def test_unknown_target(self, transfers, room):
        assert transfers.request(room, "carol") is TransferRequestOutcome.TARGET_NOT_FOUND
        assert transfers.is_pending(room) is False

    def test_unknown_room(self, transfers):
        assert transfers.request("ZZZZZZ", "alice") is TransferRequestOutcome.ROOM_NOT_FOUND

    def test_rooms_are_independent(self, transfers, registry, room):
        other = registry.create_room("teacher-2")
        registry.join_room(other, "carol", "Carol")
        assert transfers.request(room, "alice") is TransferRequestOutcome.ACCEPTED
        assert transfers.request(other, "carol") is TransferRequestOutcome.ACCEPTED

    def test_timeout_must_be_positive(self, registry):
        with pytest.raises(ValueError):
            SnapshotTransferCoordinator(registry, timeout_seconds=0)


class TestDeliver:
    def test_delivery_from_target(self, transfers, room):
        transfers.request(room, "alice")
        payload = {"thumbnails": ["a", "b"], "dataset": {"x": [1, 2]}}
        delivery = transfers.deliver(room, "alice", payload)
        assert delivery.teacher_id == "teacher"
        assert delivery.student_name == "Alice"
        assert delivery.payload is payload
        assert transfers.is_pending(room) is False

    def test_delivery_from_other_student_is_discarded(self, transfers, room):
        transfers.request(room, "alice")
        assert transfers.deliver(room, "bob", {}) is None
        assert transfers.is_pending(room) is True

    def test_unsolicited_delivery_is_discarded(self, transfers, room):
        assert transfers.deliver(room, "alice", {}) is None

    def test_duplicate_delivery_is_discarded(self, transfers, room):
        transfers.request(room, "alice")
        assert transfers.deliver(room, "alice", {"n": 1}) is not None
        assert transfers.deliver(room, "alice", {"n": 2}) is None

    def test_late_delivery_is_discarded(self, transfers, room, clock):
        transfers.request(room, "alice")
        clock.advance(10)
        assert transfers.deliver(room, "alice", {}) is None

    def test_slot_reopens_after_delivery(self, transfers, room):
        transfers.request(room, "alice")
        transfers.deliver(room, "alice", {})
        assert transfers.request(room, "bob") is TransferRequestOutcome.ACCEPTED


class TestSweep:
    def test_sweep_reports_overdue_transfers(self, transfers, room, clock):
        transfers.request(room, "alice")
        clock.advance(9)
        assert transfers.sweep() == []
        clock.advance(1)
        timeouts = transfers.sweep()
        assert len(timeouts) == 1
        assert timeouts[0].teacher_id == "teacher"
        assert timeouts[0].student_name == "Alice"
        assert transfers.is_pending(room) is False
        assert transfers.sweep() == []

    def test_timeout_names_student_who_already_left(self, transfers, registry, room, clock):
        transfers.request(room, "alice")
        registry.leave("alice")
        clock.advance(11)
        [timeout] = transfers.sweep()
        assert timeout.student_id == "alice"
        assert timeout.student_name == "Alice"

    def test_expire_single_room(self, transfers, room, clock):
        transfers.request(room, "alice")
        assert transfers.expire(room) is None
        clock.advance(10)
        assert transfers.expire(room).student_id == "alice"
        assert transfers.request(room, "bob") is TransferRequestOutcome.ACCEPTED

    def test_destroyed_room_drops_pending_transfer(self, transfers, registry, room, clock):
        transfers.request(room, "alice")
        registry.leave("teacher")
        clock.advance(11)
        assert transfers.sweep() == []
