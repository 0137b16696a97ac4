"""
Tests for the circuit breaker.

Covers the CLOSED -> OPEN -> HALF_OPEN -> CLOSED/OPEN cycle with an injected
clock, fast-fail rejection, stats, and the named registry.
"""

import asyncio

import pytest

from resilient.core.errors import CircuitOpenError, ErrorCode
from resilient.core.settings import ResilienceSettings
from resilient.execution.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitSnapshot,
    CircuitState,
)
from tests._support.fault_injection import ScriptedOperation, network_fault


def make_breaker(clock, **kwargs):
    kwargs.setdefault("failure_threshold", 3)
    kwargs.setdefault("recovery_timeout", 30.0)
    return CircuitBreaker(name="summaries-api", clock=clock, **kwargs)


async def trip(breaker):
    failing = ScriptedOperation([network_fault()], repeat_last=True)
    for _ in range(breaker.failure_threshold):
        with pytest.raises(TypeError):
            await breaker.execute(failing)


# =============================================================================
# State Tests
# =============================================================================


class TestInitialState:
    def test_defaults(self):
        breaker = CircuitBreaker()
        assert breaker.failure_threshold == 5
        assert breaker.recovery_timeout == 60.0
        assert breaker.get_state() == CircuitSnapshot(CircuitState.CLOSED, 0, 0)

    @pytest.mark.parametrize(
        "kwargs", [{"failure_threshold": 0}, {"recovery_timeout": -1}]
    )
    def test_invalid_settings_rejected(self, kwargs):
        with pytest.raises(ValueError):
            CircuitBreaker(**kwargs)

    def test_from_settings(self):
        settings = ResilienceSettings(breaker_failure_threshold=2, breaker_recovery_timeout=5.0)
        breaker = CircuitBreaker.from_settings(settings, name="auth")
        assert breaker.failure_threshold == 2
        assert breaker.recovery_timeout == 5.0
        assert breaker.name == "auth"


class TestClosed:
    @pytest.mark.asyncio
    async def test_success_passes_through(self, clock):
        breaker = make_breaker(clock)
        assert await breaker.execute(ScriptedOperation(result="ok")) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_errors_propagate_unchanged(self, clock):
        breaker = make_breaker(clock)
        fault = network_fault()
        with pytest.raises(TypeError) as exc_info:
            await breaker.execute(ScriptedOperation([fault]))
        assert exc_info.value is fault

    @pytest.mark.asyncio
    async def test_stays_closed_below_threshold(self, clock):
        breaker = make_breaker(clock)
        failing = ScriptedOperation([network_fault()], repeat_last=True)
        for _ in range(2):
            with pytest.raises(TypeError):
                await breaker.execute(failing)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failures == 2

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, clock):
        breaker = make_breaker(clock)
        op = ScriptedOperation([network_fault(), network_fault()], result="ok")
        for _ in range(2):
            with pytest.raises(TypeError):
                await breaker.execute(op)
        await breaker.execute(op)
        assert breaker.failures == 0

    @pytest.mark.asyncio
    async def test_opens_at_threshold(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        snapshot = breaker.get_state()
        assert snapshot.state == CircuitState.OPEN
        assert snapshot.failures == 3
        assert snapshot.last_failure_time == clock.now


class TestOpen:
    @pytest.mark.asyncio
    async def test_rejects_without_invoking(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        op = ScriptedOperation(result="ok")
        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.execute(op)
        assert op.calls == 0
        assert exc_info.value.code is ErrorCode.SERVER
        assert exc_info.value.message == "Service temporarily unavailable"
        assert exc_info.value.circuit == "summaries-api"

    @pytest.mark.asyncio
    async def test_still_open_at_exact_timeout(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        clock.advance(30.0)
        with pytest.raises(CircuitOpenError):
            await breaker.execute(ScriptedOperation())
        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_rejection_does_not_count_as_failure(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        with pytest.raises(CircuitOpenError):
            await breaker.execute(ScriptedOperation())
        assert breaker.failures == 3
        assert breaker.stats.rejected_requests == 1


class TestHalfOpen:
    @pytest.mark.asyncio
    async def test_trial_success_closes(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        clock.advance(30.1)
        assert await breaker.execute(ScriptedOperation(result="ok")) == "ok"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failures == 0

    @pytest.mark.asyncio
    async def test_trial_failure_reopens(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        clock.advance(31)
        with pytest.raises(TypeError):
            await breaker.execute(ScriptedOperation([network_fault()]))
        snapshot = breaker.get_state()
        assert snapshot.state == CircuitState.OPEN
        assert snapshot.last_failure_time == clock.now

        with pytest.raises(CircuitOpenError):
            await breaker.execute(ScriptedOperation())

    @pytest.mark.asyncio
    async def test_state_read_does_not_transition(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        clock.advance(60)
        assert breaker.state == CircuitState.OPEN
        assert breaker.get_state().state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_only_one_trial_admitted(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        clock.advance(31)

        release = asyncio.Event()

        async def slow_trial():
            await release.wait()
            return "ok"

        trial = asyncio.create_task(breaker.execute(slow_trial))
        await asyncio.sleep(0)
        assert breaker.state == CircuitState.HALF_OPEN

        with pytest.raises(CircuitOpenError):
            await breaker.execute(ScriptedOperation())

        release.set()
        assert await trial == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_cancelled_trial_frees_slot(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        clock.advance(31)

        async def hang():
            await asyncio.Event().wait()

        trial = asyncio.create_task(breaker.execute(hang))
        await asyncio.sleep(0)
        trial.cancel()
        with pytest.raises(asyncio.CancelledError):
            await trial

        assert await breaker.execute(ScriptedOperation(result="ok")) == "ok"


class TestSyncCall:
    def test_call_passes_arguments(self, clock):
        breaker = make_breaker(clock)
        assert breaker.call(lambda a, b=0: a + b, 2, b=3) == 5

    def test_call_opens_and_rejects(self, clock):
        breaker = make_breaker(clock, failure_threshold=1)
        op = ScriptedOperation([network_fault()])
        with pytest.raises(TypeError):
            breaker.call(op.call_sync)
        with pytest.raises(CircuitOpenError):
            breaker.call(op.call_sync)
        assert op.calls == 1


class TestStatsAndReset:
    @pytest.mark.asyncio
    async def test_stats(self, clock):
        breaker = make_breaker(clock)
        await breaker.execute(ScriptedOperation())
        await trip(breaker)
        with pytest.raises(CircuitOpenError):
            await breaker.execute(ScriptedOperation())

        stats = breaker.stats
        assert stats.total_requests == 5
        assert stats.successful_requests == 1
        assert stats.failed_requests == 3
        assert stats.rejected_requests == 1
        assert stats.state_changes == 1
        assert stats.failure_rate == 75.0

    @pytest.mark.asyncio
    async def test_reset_closes(self, clock):
        breaker = make_breaker(clock)
        await trip(breaker)
        breaker.reset()
        assert breaker.get_state() == CircuitSnapshot(CircuitState.CLOSED, 0, 0)
        assert await breaker.execute(ScriptedOperation(result="ok")) == "ok"

    def test_manual_recording(self, clock):
        breaker = make_breaker(clock, failure_threshold=2)
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED


class TestRegistry:
    def test_get_or_create_returns_same_instance(self):
        registry = CircuitBreakerRegistry()
        first = registry.get_or_create("summaries-api", failure_threshold=2)
        assert registry.get_or_create("summaries-api") is first
        assert first.failure_threshold == 2

    def test_get_missing_is_none(self):
        assert CircuitBreakerRegistry().get("nope") is None

    def test_names_and_snapshot(self):
        registry = CircuitBreakerRegistry()
        registry.get_or_create("a")
        registry.get_or_create("b")
        assert sorted(registry.names()) == ["a", "b"]
        assert registry.snapshot()["a"].state == CircuitState.CLOSED

    def test_defaults_from_settings(self):
        registry = CircuitBreakerRegistry(ResilienceSettings(breaker_failure_threshold=7))
        assert registry.get_or_create("auth").failure_threshold == 7

    def test_reset_all(self, clock):
        registry = CircuitBreakerRegistry()
        breaker = registry.get_or_create("a", failure_threshold=1, clock=clock)
        breaker.record_failure()
        registry.reset_all()
        assert breaker.state == CircuitState.CLOSED
