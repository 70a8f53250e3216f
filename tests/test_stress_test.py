"""Tests for the classroom load simulation script."""

import asyncio
import json
import random

import websockets.exceptions

import stress_test
from classroom_app.core.models import StudentStatus


class FakeConnection:
    """Replays server frames and records what the client sends."""

    def __init__(self, frames, gap=0.01):
        self.frames = [json.dumps(frame) for frame in frames]
        self.gap = gap
        self.sent = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def __aiter__(self):
        return self._replay()

    async def _replay(self):
        for raw in self.frames:
            await asyncio.sleep(self.gap)
            yield raw

    async def send(self, raw):
        self.sent.append(json.loads(raw))


class FakeConnector:
    def __init__(self, frames):
        self.frames = frames
        self.connections = []
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        connection = FakeConnection(self.frames)
        self.connections.append(connection)
        return connection


JOINED = {"event": "joined_room", "data": {"code": "ABC234", "attentionMode": False}}


# ─── MESSAGE BUILDERS ────────────────────────────────────────────────────────

class TestMessageBuilders:
    def test_student_name_is_numbered(self):
        name = stress_test.student_name(7, random.Random(1))
        base, number = name.rsplit("_", 1)
        assert base in stress_test.NAMES
        assert number == "7"

    def test_random_metrics_shape(self):
        rng = random.Random(3)
        for _ in range(50):
            metrics = stress_test.random_metrics(rng)
            assert set(metrics) == {"samples", "accuracy", "k", "converged"}
            assert 0 <= metrics["samples"] < 100
            assert metrics["accuracy"] == 0 or 0.8 <= metrics["accuracy"] <= 1.0
            assert metrics["k"] == 3
            assert isinstance(metrics["converged"], bool)

    def test_status_frame_uses_known_status(self):
        frame = stress_test.status_frame(random.Random(5))
        assert frame["event"] == "update_status"
        assert StudentStatus(frame["data"]["status"])
        assert "metrics" in frame["data"]


# ─── SIMULATED STUDENTS ───────────────────────────────────────────────────────

class TestSimulatedStudent:
    def test_joins_reports_and_leaves_when_kicked(self):
        """A kicked student stops sending and hangs up."""
        connector = FakeConnector([JOINED, {"event": "kicked", "data": None}])
        tracker = stress_test.LoadTracker()
        student = stress_test.SimulatedStudent(
            1, "ws://test/ws", "ABC234", tracker,
            rng=random.Random(0), interval=(0.0, 0.0), connect=connector,
        )

        asyncio.run(student.run())

        [connection] = connector.connections
        assert connection.sent[0] == {
            "event": "join_room",
            "data": {"code": "ABC234", "name": student.name},
        }
        updates = connection.sent[1:]
        assert updates
        assert all(frame["event"] == "update_status" for frame in updates)
        assert tracker.updates_sent == len(updates)
        assert tracker.joined == {student.name}
        assert tracker.kicked == {student.name}
        assert connector.calls == [("ws://test/ws", {"max_size": None})]

    def test_invalid_code_is_a_failure(self):
        connector = FakeConnector([{"event": "error", "data": "Invalid Room Code"}])
        tracker = stress_test.LoadTracker()
        student = stress_test.SimulatedStudent(
            1, "ws://test/ws", "QQQQQQ", tracker, connect=connector,
        )

        asyncio.run(student.run())

        assert tracker.failed == {student.name}
        assert tracker.joined == set()
        assert len(connector.connections[0].sent) == 1

    def test_refused_connection_is_a_failure(self):
        def refuse(url, **kwargs):
            raise ConnectionRefusedError("nobody listening")

        tracker = stress_test.LoadTracker()
        student = stress_test.SimulatedStudent(
            1, "ws://test/ws", "ABC234", tracker, connect=refuse,
        )

        asyncio.run(student.run())

        assert tracker.failed == {student.name}

    def test_room_closed_ends_the_student(self):
        connector = FakeConnector([JOINED, {"event": "room_closed", "data": "ABC234"}])
        tracker = stress_test.LoadTracker()
        student = stress_test.SimulatedStudent(
            1, "ws://test/ws", "ABC234", tracker, interval=(60.0, 60.0), connect=connector,
        )

        asyncio.run(student.run())

        assert tracker.closed == {student.name}
        assert tracker.updates_sent == 0


# ─── SIMULATION RUN ───────────────────────────────────────────────────────────

class TestRunSimulation:
    def test_every_student_connects(self):
        connector = FakeConnector([JOINED, {"event": "kicked", "data": None}])

        tracker = asyncio.run(
            stress_test.run_simulation(
                "ABC234", "ws://test/ws", num_students=5,
                connect=connector, interval=(60.0, 60.0),
            )
        )

        assert len(connector.connections) == 5
        assert len(tracker.kicked) == len(tracker.joined)
        assert "joined" in tracker.summary(5)

    def test_closed_connection_stops_updates(self):
        class ClosingConnection(FakeConnection):
            async def send(self, raw):
                message = json.loads(raw)
                if message["event"] == "update_status":
                    raise websockets.exceptions.ConnectionClosed(None, None)
                self.sent.append(message)

        connection = ClosingConnection([JOINED, {"event": "kicked", "data": None}], gap=0.05)
        tracker = stress_test.LoadTracker()
        student = stress_test.SimulatedStudent(
            1, "ws://test/ws", "ABC234", tracker,
            interval=(0.0, 0.0), connect=lambda url, **kwargs: connection,
        )

        asyncio.run(student.run())

        assert tracker.updates_sent == 0
        assert tracker.kicked == {student.name}
