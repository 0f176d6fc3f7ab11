"""Bounded retry with exponential backoff, stdlib only."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, and how long to wait in between.

    ``should_retry`` decides whether a failure is worth another attempt;
    when omitted every failure is retried until attempts run out.
    ``on_retry`` is told about each failure that will be retried, with
    the 1-based attempt number that just failed.
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    should_retry: Optional[Callable[[BaseException], bool]] = None
    on_retry: Optional[Callable[[BaseException, int], None]] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt."""
        return self.base_delay_ms * (2 ** (attempt - 1)) / 1000.0


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Run ``fn`` until it succeeds or the policy gives up.

    The last exception propagates unchanged on exhaustion, or straight
    away when ``policy.should_retry`` rejects it. No wait follows the
    final attempt.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return fn()
        except Exception as exc:
            if attempt == policy.max_attempts:
                raise
            if policy.should_retry is not None and not policy.should_retry(exc):
                raise
            if policy.on_retry is not None:
                policy.on_retry(exc, attempt)
            delay = policy.delay_for(attempt)
            logger.debug(
                "attempt %d/%d failed (%s), retrying in %.1fs",
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            sleep(delay)
    raise RuntimeError("call_with_retry: unreachable")  # pragma: no cover


FETCH_POLICY = RetryPolicy(max_attempts=3, base_delay_ms=2000)
EVALUATE_POLICY = RetryPolicy(max_attempts=2, base_delay_ms=2000)
SEND_POLICY = RetryPolicy(max_attempts=2, base_delay_ms=3000)
