import asyncio
import time
from typing import Callable, Optional


class CircuitOpenError(RuntimeError):
    pass


class CircuitBreaker:
    """
    Simple async in-memory circuit breaker.

    Usage:
      cb = CircuitBreaker(name="smtp", failure_threshold=3, recovery_timeout=30)

    Behavior:
      - CLOSED: normal operation; failures increment fail_count.
      - OPEN: before_call() raises CircuitOpenError until recovery_timeout elapses.
      - HALF_OPEN: a single probe is let through; success closes, failure reopens.
    """
    def __init__(self, name: str, failure_threshold: int = 3, recovery_timeout: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.failure_threshold = max(1, int(failure_threshold))
        self.recovery_timeout = float(recovery_timeout)

        self._state = "CLOSED"  # CLOSED | OPEN | HALF_OPEN
        self._fail_count = 0
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False
        self._lock = asyncio.Lock()
        self._clock = clock

    @property
    def state(self) -> str:
        return self._state

    def _maybe_transition(self):
        # called under lock
        if self._state == "OPEN" and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.recovery_timeout:
                self._state = "HALF_OPEN"
                self._probe_in_flight = False

    async def before_call(self):
        async with self._lock:
            self._maybe_transition()
            if self._state == "OPEN":
                raise CircuitOpenError(f"circuit {self.name} is open")
            if self._state == "HALF_OPEN":
                if self._probe_in_flight:
                    raise CircuitOpenError(f"circuit {self.name} is half-open and a probe is running")
                self._probe_in_flight = True

    async def record_success(self):
        async with self._lock:
            self._state = "CLOSED"
            self._fail_count = 0
            self._opened_at = None
            self._probe_in_flight = False

    async def record_failure(self):
        async with self._lock:
            if self._state == "HALF_OPEN":
                # a failing probe re-opens immediately
                self._open()
                return
            self._fail_count += 1
            if self._fail_count >= self.failure_threshold:
                self._open()

    def _open(self):
        self._state = "OPEN"
        self._opened_at = self._clock()
        self._fail_count = 0
        self._probe_in_flight = False
