"""Requests-per-minute throttling between sequential remote calls."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from usecase_mapper.errors import ConfigurationError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Space call starts at least `60 / rpm` seconds apart.

    The interval is measured from the start of the previous call, so time spent
    waiting on a slow response counts toward the throttle.
    """

    def __init__(
        self,
        rpm: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rpm <= 0:
            raise ConfigurationError(f"rpm must be positive, got {rpm}.")
        self._rpm = float(rpm)
        self._clock = clock
        self._sleep = sleep

    @property
    def rpm(self) -> float:
        return self._rpm

    @property
    def min_interval_seconds(self) -> float:
        return 60.0 / self._rpm

    @property
    def min_interval_ms(self) -> float:
        return 60000.0 / self._rpm

    def now(self) -> float:
        """Return the limiter clock reading used to mark call starts."""

        return self._clock()

    def wait_seconds(self, call_started_at: float) -> float:
        """Return how long to wait before the next call may start."""

        elapsed = self._clock() - call_started_at
        return max(0.0, self.min_interval_seconds - elapsed)

    def wait_after(self, call_started_at: float) -> float:
        """Suspend until the interval since `call_started_at` has passed; return the wait."""

        wait = self.wait_seconds(call_started_at)
        if wait > 0:
            logger.debug("Rate limit: waiting %.2fs before next call (rpm=%s).", wait, self._rpm)
            self._sleep(wait)
        return wait
