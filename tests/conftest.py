"""Shared fixtures for metacpan_recent tests."""

from __future__ import annotations

import pytest

from metacpan_recent.models import PollerState
from metacpan_recent.session import Kernel, Session

from tests.factories import T
from tests.mocks import Collector, FakeClock, MockGateway


@pytest.fixture
def kernel() -> Kernel:
    return Kernel()


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture
def subscriber(kernel, collector) -> Session:
    return Session({"upload": collector}, alias="sub", kernel=kernel)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T)


@pytest.fixture
def gateway() -> MockGateway:
    return MockGateway()


@pytest.fixture
def state() -> PollerState:
    return PollerState(event="upload", delay=180, watermark=T)
