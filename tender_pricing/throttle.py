"""
throttle.py — Pause and backoff policy between remote catalog calls.

The catalog sits behind a single logged-in session and starts returning
errors when hit too fast. Pauses are kept out of the search and batch
loops and live here as two small objects, each taking the sleep
function as a parameter so tests can run a 400-item batch instantly and
still assert on every pause that would have happened.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], None]


class Pacer:
    """Sleeps on request. Zero or negative pauses are skipped."""

    def __init__(self, sleep: SleepFn = time.sleep):
        self._sleep = sleep

    def pause(self, seconds: float) -> None:
        if seconds <= 0:
            return
        self._sleep(seconds)


class FailureBackoff:
    """
    Consecutive-failure counter with an extended pause.

    Every failure bumps the counter; once it reaches the threshold we
    pause for the backoff duration and start counting again from zero.
    Any success resets the counter.
    """

    def __init__(self, threshold: int, pause: float, sleep: SleepFn = time.sleep):
        self.threshold = threshold
        self.pause = pause
        self._pacer = Pacer(sleep)
        self.consecutive = 0
        self.backoffs = 0

    def record_success(self) -> None:
        self.consecutive = 0

    def record_failure(self) -> bool:
        """Count a failure. Returns True when it triggered a backoff pause."""
        self.consecutive += 1
        if self.threshold > 0 and self.consecutive >= self.threshold:
            logger.warning(
                "%d consecutive failures, backing off for %.1fs",
                self.consecutive, self.pause,
            )
            self._pacer.pause(self.pause)
            self.backoffs += 1
            self.consecutive = 0
            return True
        return False
