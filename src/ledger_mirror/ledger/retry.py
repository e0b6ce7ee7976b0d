"""Retry with exponential backoff for transient ledger failures.

Only ``LedgerUnavailable`` is retried. A not-found answer is a definitive
response from the ledger and is returned to the caller immediately.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from ..errors import LedgerUnavailable, NotFoundError, ValidationError
from .circuit_breaker import CircuitBreakerOpen

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 0.5  # seconds
    max_delay: float = 8.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True

    retry_on: tuple[type[Exception], ...] = (LedgerUnavailable,)

    no_retry_on: tuple[type[Exception], ...] = (
        NotFoundError,
        ValidationError,
        CircuitBreakerOpen,
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")


def calculate_backoff(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Calculate backoff delay for a given attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap
        exponential_base: Base for exponential growth
        jitter: Whether to add random jitter

    Returns:
        Delay in seconds
    """
    delay = base_delay * (exponential_base ** attempt)
    delay = min(delay, max_delay)

    if jitter:
        # Up to 25% either way
        jitter_range = delay * 0.25
        delay = delay + random.uniform(-jitter_range, jitter_range)

    return max(0, delay)


def call_with_retry(
    func: Callable[[], T],
    config: RetryConfig | None = None,
    *,
    operation: str = "ledger call",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds or attempts run out.

    Example:
        account = call_with_retry(
            lambda: gateway.load_account(address),
            RetryConfig(max_attempts=3),
            operation="load_account",
        )
    """
    cfg = config or RetryConfig()
    last_exception: Exception | None = None

    for attempt in range(cfg.max_attempts):
        try:
            return func()
        except cfg.no_retry_on:
            raise
        except cfg.retry_on as e:
            last_exception = e

            if attempt < cfg.max_attempts - 1:
                delay = calculate_backoff(
                    attempt,
                    cfg.base_delay,
                    cfg.max_delay,
                    cfg.exponential_base,
                    cfg.jitter,
                )
                logger.warning(
                    f"Retry {attempt + 1}/{cfg.max_attempts} for {operation} "
                    f"after {delay:.2f}s: {e}"
                )
                sleep(delay)

    logger.error(f"All {cfg.max_attempts} attempts failed for {operation}")
    raise last_exception  # type: ignore[misc]


__all__ = [
    "RetryConfig",
    "calculate_backoff",
    "call_with_retry",
]
