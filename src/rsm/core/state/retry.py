"""Retry wait and cancellation primitives for ``transit_with_retries``."""

from __future__ import annotations

import math
import threading
from datetime import timedelta
from typing import Callable, Optional, Union

WaitDuration = Union[int, float, timedelta]
RetryWait = Callable[[int], WaitDuration]


def wait_seconds(value: WaitDuration) -> Optional[float]:
    """Convert a backoff function result to seconds.

    Negative values mean no wait. ``float("inf")`` (or anything past
    ``threading.TIMEOUT_MAX``) maps to ``None``: wait until
    ``stop()``.

    Raises:
        ValueError: ``value`` is NaN.
    """
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    else:
        seconds = float(value)
    if math.isnan(seconds):
        raise ValueError("retry wait must be a number of seconds, got NaN")
    if seconds >= threading.TIMEOUT_MAX:
        return None
    return max(seconds, 0.0)


def exponential_backoff(
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 60.0,
) -> RetryWait:
    """Return ``attempt -> seconds`` growing by ``backoff_factor`` per attempt.

    Example:
        >>> wait = exponential_backoff(initial_delay=0.5, backoff_factor=2.0, max_delay=3.0)
        >>> [wait(n) for n in (1, 2, 3, 4)]
        [0.5, 1.0, 2.0, 3.0]
    """

    def _wait(attempt: int) -> float:
        delay = initial_delay * (backoff_factor ** max(attempt - 1, 0))
        return min(delay, max_delay)

    return _wait


class StopSignal:
    """Edge-triggered wake-up for a waiting retry loop.

    ``fire()`` only reaches a loop that is blocked in ``wait()`` at that
    moment. A fire with no waiter is dropped, never queued for a later wait.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._generation = 0
        self._waiters = 0

    @property
    def waiting(self) -> bool:
        with self._cond:
            return self._waiters > 0

    def wait(self, timeout: Optional[float]) -> bool:
        """Block up to ``timeout`` seconds (``None`` blocks until ``fire``).

        Return True when woken by ``fire``.
        """
        with self._cond:
            generation = self._generation
            self._waiters += 1
            try:
                return self._cond.wait_for(
                    lambda: self._generation != generation, timeout=timeout
                )
            finally:
                self._waiters -= 1

    def fire(self) -> bool:
        """Wake current waiters. Return False if nobody was waiting."""
        with self._cond:
            if self._waiters == 0:
                return False
            self._generation += 1
            self._cond.notify_all()
            return True


__all__ = ["StopSignal", "RetryWait", "WaitDuration", "exponential_backoff", "wait_seconds"]
