"""Pure delay helpers: exponential backoff, jitter and retry hints.

Nothing here sleeps or keeps state; callers thread a RetryState through
their loop and feed it to these functions.
"""

import random
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

DEFAULT_JITTER_FACTOR = 0.2


@dataclass
class RetryState:
    """Attempt counter and last chosen delay of one logical operation."""
    attempt: int = 1
    delay: float = 0.0

    def advance(self, delay: float) -> "RetryState":
        return RetryState(attempt=self.attempt + 1, delay=delay)


def compute_backoff(base_delay: float, attempt: int, factor: float = 2.0, max_delay: Optional[float] = None) -> float:
    """Returns base_delay * factor**(attempt-1), capped at max_delay.

    Args:
        base_delay: Delay before the first retry, in seconds.
        attempt: 1-based attempt number that just failed.
        factor: Growth multiplier per attempt.
        max_delay: Upper bound, or None for no cap.
    """
    delay = base_delay * (factor ** max(0, attempt - 1))
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def add_jitter(delay: float, jitter_factor: float = DEFAULT_JITTER_FACTOR, rand: Callable[[], float] = random.random) -> float:
    """Adds a uniform random amount in [0, jitter_factor * delay]."""
    return delay + delay * jitter_factor * rand()


def parse_retry_after(value: Optional[str], now: Callable[[], float] = time.time) -> Optional[float]:
    """Parses a Retry-After value into seconds.

    Accepts an integer count of seconds or an HTTP date. Returns None when
    the value is absent or unparseable; past dates yield 0.
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    try:
        return float(max(0, int(value)))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    return max(0.0, when.timestamp() - now())


def retry_delay(
    attempt: int,
    retry_after: Optional[float],
    base_delay: float,
    max_delay: float,
    factor: float = 2.0,
    jitter_factor: float = DEFAULT_JITTER_FACTOR,
    rand: Callable[[], float] = random.random,
) -> float:
    """Chooses the wait before the next attempt.

    A server retry hint wins over the computed backoff; it is jittered and
    then clamped to twice max_delay.
    """
    if retry_after is not None:
        return min(add_jitter(retry_after, jitter_factor, rand), max_delay * 2)
    return add_jitter(compute_backoff(base_delay, attempt, factor, max_delay), jitter_factor, rand)


def next_poll_interval(current: float, multiplier: float, max_interval: float) -> float:
    """Grows a poll interval by multiplier, capped at max_interval."""
    return min(current * multiplier, max_interval)
