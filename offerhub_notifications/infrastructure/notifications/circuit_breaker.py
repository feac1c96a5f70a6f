"""Three-state circuit breaker guarding unreliable async operations."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from .errors import CircuitBreakerOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """Fail fast once ``threshold`` consecutive failures have been observed.

    An open breaker rejects calls until ``timeout`` seconds have passed since
    the last failure, then lets a trial call through in the half-open state.
    The trial's outcome closes or re-opens the circuit. Calls arriving while
    the trial is in flight are not held back.
    """

    def __init__(
        self,
        threshold: int = 5,
        timeout: float = 60.0,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if threshold <= 0:
            raise ValueError("threshold must be greater than zero")
        self.name = name
        self._threshold = threshold
        self._timeout = timeout
        self._clock = clock
        self._failures = 0
        self._last_failure_time = 0.0
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def get_state(self) -> CircuitState:
        return self._state

    def allows_request(self) -> bool:
        """Return whether :meth:`execute` would attempt a call right now."""

        return self._state is not CircuitState.OPEN or self._timeout_elapsed()

    def retry_after(self) -> float:
        """Seconds until an open breaker lets a trial call through."""

        if self._state is not CircuitState.OPEN:
            return 0.0
        return max(self._timeout - (self._clock() - self._last_failure_time), 0.0)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` unless the circuit is open."""

        if self._state is CircuitState.OPEN:
            if self._timeout_elapsed():
                self._transition(CircuitState.HALF_OPEN)
            else:
                raise CircuitBreakerOpenError(f"Circuit breaker '{self.name}' is open")

        try:
            result = await operation()
        except Exception:
            self._on_failure()
            raise
        self._on_success()
        return result

    def reset(self) -> None:
        """Force the breaker back to a clean closed state."""

        self._failures = 0
        self._last_failure_time = 0.0
        self._transition(CircuitState.CLOSED)

    def _on_success(self) -> None:
        self._failures = 0
        self._transition(CircuitState.CLOSED)

    def _on_failure(self) -> None:
        self._failures += 1
        self._last_failure_time = self._clock()
        if self._state is CircuitState.HALF_OPEN or self._failures >= self._threshold:
            self._transition(CircuitState.OPEN)

    def _timeout_elapsed(self) -> bool:
        return self._clock() - self._last_failure_time > self._timeout

    def _transition(self, state: CircuitState) -> None:
        if state is self._state:
            return
        logger.warning(
            "Circuit breaker '%s' moved from %s to %s (failures=%s)",
            self.name,
            self._state.value,
            state.value,
            self._failures,
        )
        self._state = state


__all__ = ["CircuitBreaker", "CircuitState"]
