"""Tests for the per-key circuit breaker."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.core.domain.exceptions import CircuitOpenError
from src.core.infrastructure.circuit_breaker import CircuitBreaker
from tests.conftest import FakeClock

pytestmark = pytest.mark.anyio


class IgnoredError(Exception):
    pass


async def test_success_passes_result_through(clock: FakeClock) -> None:
    breaker = CircuitBreaker(5, clock=clock)
    operation = AsyncMock(return_value="ok")

    assert await breaker.execute("BBC", operation) == "ok"
    assert not breaker.is_open("BBC")


async def test_failure_opens_circuit_and_blocks_without_calling(clock: FakeClock) -> None:
    breaker = CircuitBreaker(5, clock=clock)

    with pytest.raises(RuntimeError):
        await breaker.execute("BBC", AsyncMock(side_effect=RuntimeError("boom")))

    clock.advance(4)
    operation = AsyncMock(return_value="ok")
    with pytest.raises(CircuitOpenError) as exc_info:
        await breaker.execute("BBC", operation)

    operation.assert_not_awaited()
    assert exc_info.value.key == "BBC"
    assert exc_info.value.retry_in_sec == pytest.approx(1.0)


async def test_circuit_closes_after_cool_down(clock: FakeClock) -> None:
    breaker = CircuitBreaker(5, clock=clock)
    with pytest.raises(RuntimeError):
        await breaker.execute("BBC", AsyncMock(side_effect=RuntimeError("boom")))

    clock.advance(5)
    assert await breaker.execute("BBC", AsyncMock(return_value="ok")) == "ok"
    assert breaker.snapshot() == {}


async def test_keys_are_independent(clock: FakeClock) -> None:
    breaker = CircuitBreaker(5, clock=clock)
    with pytest.raises(RuntimeError):
        await breaker.execute("BBC", AsyncMock(side_effect=RuntimeError("boom")))

    assert await breaker.execute("Guardian", AsyncMock(return_value=1)) == 1
    assert breaker.is_open("BBC")
    assert not breaker.is_open("Guardian")


async def test_ignored_exceptions_are_not_recorded(clock: FakeClock) -> None:
    breaker = CircuitBreaker(5, ignored_exceptions=(IgnoredError,), clock=clock)

    with pytest.raises(IgnoredError):
        await breaker.execute("BBC", AsyncMock(side_effect=IgnoredError()))

    assert not breaker.is_open("BBC")


async def test_cancellation_is_not_recorded(clock: FakeClock) -> None:
    breaker = CircuitBreaker(5, clock=clock)

    with pytest.raises(asyncio.CancelledError):
        await breaker.execute("BBC", AsyncMock(side_effect=asyncio.CancelledError()))

    assert not breaker.is_open("BBC")


def test_prune_drops_expired_records(clock: FakeClock) -> None:
    breaker = CircuitBreaker(5, clock=clock)
    breaker.record_failure("BBC")
    clock.advance(3)
    breaker.record_failure("LRT")
    clock.advance(3)

    assert breaker.prune() == 1
    assert breaker.snapshot() == {"LRT": 2.0}


def test_negative_cool_down_rejected() -> None:
    with pytest.raises(ValueError):
        CircuitBreaker(-1)
