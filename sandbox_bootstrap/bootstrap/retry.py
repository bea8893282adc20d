from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_DETAIL_CHARS = 500


@dataclass(frozen=True)
class BootstrapAttempt:
    operation: str
    attempt: int  # 1-based
    max_attempts: int
    ok: bool
    detail: str | None = None


@dataclass
class RetryOutcome(Generic[T]):
    value: T | None = None
    attempts: list[BootstrapAttempt] = field(default_factory=list)
    slept_s: float = 0.0

    @property
    def ok(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].ok


def backoff_delay(
    attempt: int,
    *,
    base_s: float = 2.0,
    jitter: Callable[[], float] | None = None,
) -> float:
    """Seconds to wait after zero-based `attempt` failed.

    `base * 2**attempt + uniform(0, 1)`; there is no ceiling other than the
    caller's attempt limit.
    """
    j = jitter() if jitter is not None else random.uniform(0, 1)
    return float(base_s) * (2 ** int(attempt)) + float(j)


def truncate(text: str | None, limit: int = _MAX_DETAIL_CHARS) -> str:
    s = str(text or "")
    return s if len(s) <= limit else s[:limit] + "..."


def run_with_retry(
    operation: str,
    fn: Callable[[int], T],
    *,
    max_attempts: int,
    base_delay_s: float,
    sleep: Callable[[float], None] = time.sleep,
    jitter: Callable[[], float] | None = None,
) -> RetryOutcome[T]:
    """Call `fn(attempt)` until it returns without raising.

    Any exception counts as a failed attempt. After the last failed attempt
    the outcome is returned with `ok == False`; nothing is raised.
    """
    max_attempts = max(1, int(max_attempts))
    outcome: RetryOutcome[T] = RetryOutcome()

    for attempt in range(max_attempts):
        logger.debug("%s: attempt %d/%d", operation, attempt + 1, max_attempts)
        try:
            value = fn(attempt)
        except Exception as exc:
            detail = truncate(str(exc) or type(exc).__name__)
            outcome.attempts.append(
                BootstrapAttempt(
                    operation=operation,
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    ok=False,
                    detail=detail,
                )
            )
            logger.warning(
                "%s: attempt %d/%d failed: %s", operation, attempt + 1, max_attempts, detail
            )
        else:
            outcome.value = value
            outcome.attempts.append(
                BootstrapAttempt(
                    operation=operation,
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    ok=True,
                )
            )
            logger.info("%s: succeeded on attempt %d", operation, attempt + 1)
            return outcome

        if attempt < max_attempts - 1:
            delay = backoff_delay(attempt, base_s=base_delay_s, jitter=jitter)
            logger.info("%s: waiting %.1fs before retry", operation, delay)
            sleep(delay)
            outcome.slept_s += delay

    logger.warning("%s: all %d attempts failed", operation, max_attempts)
    return outcome
