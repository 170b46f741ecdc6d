from __future__ import annotations

import asyncio

from src.skillserver.models import SchoolInfo
from src.skillserver.readiness import Initializer, Readiness, ReadinessGate

from tests.conftest import FakeSource


def _initializer(source: FakeSource, **kwargs) -> Initializer:
    kwargs.setdefault("retry_seconds", 0.01)
    return Initializer(source, "불곡고", **kwargs)


def test_gate_starts_not_ready() -> None:
    gate = ReadinessGate()
    assert gate.state is Readiness.NOT_READY
    assert gate.is_ready is False


def test_successful_initialization_selects_best_match() -> None:
    source = FakeSource(
        schools=[SchoolInfo(name="불곡중학교", code=1), SchoolInfo(name="불곡고", code=2)]
    )
    initializer = _initializer(source)

    assert asyncio.run(initializer.ensure_ready(timeout=2)) is True
    assert initializer.gate.state is Readiness.READY
    assert source.selected == SchoolInfo(name="불곡고", code=2)
    assert initializer.attempts == 1


def test_failed_attempts_are_retried_until_ready() -> None:
    source = FakeSource(search_failures=2)
    initializer = _initializer(source)

    assert asyncio.run(initializer.ensure_ready(timeout=2)) is True
    assert initializer.attempts == 3
    assert source.initialize_calls == 3


def test_school_not_found_stays_not_ready_and_keeps_retrying() -> None:
    source = FakeSource(schools=[])
    initializer = _initializer(source)

    async def scenario() -> None:
        assert await initializer.ensure_ready(timeout=0.1) is False
        assert initializer.in_flight
        await initializer.stop()
        assert not initializer.in_flight

    asyncio.run(scenario())
    assert initializer.gate.is_ready is False
    assert initializer.attempts >= 2


def test_start_while_in_flight_reuses_task() -> None:
    source = FakeSource(search_failures=1)
    initializer = _initializer(source, retry_seconds=0.05)

    async def scenario() -> None:
        first = initializer.start()
        second = initializer.start()
        assert first is second
        await first
        assert initializer.start() is first

    asyncio.run(scenario())
    assert initializer.gate.is_ready
    assert initializer.attempts == 2


def test_ensure_ready_returns_immediately_once_ready() -> None:
    source = FakeSource()
    initializer = _initializer(source)

    async def scenario() -> None:
        assert await initializer.ensure_ready(timeout=2)
        assert await initializer.ensure_ready(timeout=0)

    asyncio.run(scenario())
    assert source.search_calls == 1
