from __future__ import annotations

import pytest

from sagespace_core.metrics import MetricsStore
from tests.sagespace_core.support.fakes import FakeClock, FakeLogger


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a manually advanced clock per test."""
    return FakeClock()


@pytest.fixture
def metrics_store() -> MetricsStore:
    return MetricsStore()
