"""
Fault injection for deterministic operation failures.

Retry and breaker tests need operations that fail a scripted number of times
with controlled error shapes, then succeed. ``ScriptedOperation`` replays a
queue of faults in order; once the queue is empty it returns ``result`` (or
keeps raising the last fault when ``repeat_last=True``).

Usage in test code::

    from tests._support.fault_injection import ScriptedOperation, network_fault

    op = ScriptedOperation([network_fault(), network_fault()], result="ok")
    assert await executor.execute(op) == "ok"
    assert op.calls == 3
"""

from __future__ import annotations

from typing import Any


class HTTPFailure(Exception):
    """Exception shaped like an HTTP client error carrying a response."""

    def __init__(
        self,
        status: int,
        status_text: str = "",
        *,
        url: str | None = None,
        data: Any = None,
    ):
        super().__init__(status_text or f"HTTP {status}")
        self.response = {"status": status, "statusText": status_text, "url": url, "data": data}


class RequestWithoutResponse(Exception):
    """Request was sent but no response arrived."""

    def __init__(self, url: str = "https://api.example.com/summaries"):
        super().__init__("socket hang up")
        self.request = {"url": url}
        self.response = None


def network_fault(message: str = "fetch failed") -> Exception:
    return TypeError(message)


def server_fault(status: int = 503) -> HTTPFailure:
    return HTTPFailure(status, "Service Unavailable")


def client_fault(status: int = 400) -> HTTPFailure:
    return HTTPFailure(status, "Bad Request")


class ScriptedOperation:
    """Async zero-argument operation that replays scripted faults."""

    def __init__(
        self,
        faults: list[BaseException] | None = None,
        *,
        result: Any = "ok",
        repeat_last: bool = False,
    ):
        self._faults = list(faults or [])
        self._repeat_last = repeat_last
        self.result = result
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self._faults:
            fault = self._faults[0]
            if len(self._faults) > 1 or not self._repeat_last:
                self._faults.pop(0)
            raise fault
        return self.result

    def call_sync(self) -> Any:
        """Synchronous twin for ``execute_sync`` / ``CircuitBreaker.call``."""
        self.calls += 1
        if self._faults:
            fault = self._faults[0]
            if len(self._faults) > 1 or not self._repeat_last:
                self._faults.pop(0)
            raise fault
        return self.result


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
