"""Circuit breaker for ledger queries.

Stops hammering Horizon once it is clearly down; while the breaker is open
every call fails fast and the gateway reports the ledger as unavailable.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TypeVar

from ..errors import LedgerUnavailable, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, reject all requests
    HALF_OPEN = "half_open"  # Testing if ledger recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""

    failure_threshold: int = 5     # Failures before opening
    success_threshold: int = 2     # Successes to close from half-open
    timeout_seconds: float = 30.0  # Time before trying again

    trip_on: tuple[type[Exception], ...] = (LedgerUnavailable,)

    # A not-found answer means the ledger is up and responding
    ignore: tuple[type[Exception], ...] = (NotFoundError, ValidationError)


class CircuitBreakerOpen(LedgerUnavailable):
    """Raised when the breaker rejects a call without trying it."""

    def __init__(self, name: str, time_remaining: float):
        self.name = name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreaker:
    """Circuit breaker guarding one remote dependency.

    Example:
        breaker = CircuitBreaker("horizon")
        account = breaker.call(lambda: gateway_request("/accounts/G..."))
    """

    name: str
    config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)

    # Internal state
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _success_count: int = field(default=0, init=False)
    _last_failure_time: float = field(default=0.0, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state, checking for timeout."""
        with self._lock:
            return self._current_state()

    def _current_state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._last_failure_time >= self.config.timeout_seconds:
                logger.info(f"Circuit breaker '{self.name}' transitioning to half-open")
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
        return self._state

    @property
    def time_until_retry(self) -> float:
        """Seconds until the breaker allows a trial call."""
        if self._state != CircuitState.OPEN:
            return 0.0
        elapsed = time.monotonic() - self._last_failure_time
        return max(0.0, self.config.timeout_seconds - elapsed)

    def call(self, func: Callable[[], T]) -> T:
        """Execute ``func`` with circuit breaker protection.

        Raises:
            CircuitBreakerOpen: If the circuit is open
            Exception: Any exception from ``func`` (after recording failure)
        """
        with self._lock:
            state = self._current_state()
        if state == CircuitState.OPEN:
            raise CircuitBreakerOpen(self.name, self.time_until_retry)

        try:
            result = func()
        except self.config.ignore:
            self._on_success()
            raise
        except self.config.trip_on as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def _on_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    logger.info(f"Circuit breaker '{self.name}' closing after recovery")
                    self._state = CircuitState.CLOSED
                    self._failure_count = 0
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    def _on_failure(self, exception: Exception) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()

            logger.warning(
                f"Circuit breaker '{self.name}' recorded failure "
                f"({self._failure_count}/{self.config.failure_threshold}): {exception}"
            )

            if self._state == CircuitState.HALF_OPEN:
                logger.warning(f"Circuit breaker '{self.name}' reopening after half-open failure")
                self._state = CircuitState.OPEN
            elif self._failure_count >= self.config.failure_threshold:
                logger.warning(f"Circuit breaker '{self.name}' opening after threshold reached")
                self._state = CircuitState.OPEN

    def reset(self) -> None:
        """Manually reset the circuit breaker to closed state."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
        logger.info(f"Circuit breaker '{self.name}' manually reset")

    def get_stats(self) -> dict[str, Any]:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "time_until_retry": self.time_until_retry,
        }


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerOpen",
    "CircuitState",
]
