"""Shared fixtures for the classroom coordinator tests."""

import random

import pytest

from classroom_app.core.classroom_gateway import ConnectionGateway, build_gateway
from classroom_app.core.code_generator import RoomCodeGenerator
from classroom_app.core.services.session_registry import SessionRegistry
from classroom_app.core.services.transfer_coordinator import SnapshotTransferCoordinator


class FakeClock:
    """Manually advanced stand-in for ``time.monotonic``."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry(RoomCodeGenerator(rng=random.Random(42)))


@pytest.fixture
def transfers(registry, clock) -> SnapshotTransferCoordinator:
    return SnapshotTransferCoordinator(registry, timeout_seconds=10, clock=clock)


@pytest.fixture
def gateway(registry, clock) -> ConnectionGateway:
    return build_gateway(timeout_seconds=10, registry=registry, clock=clock)
