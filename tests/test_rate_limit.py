"""Tests for requests-per-minute throttling."""

from __future__ import annotations

import pytest

from usecase_mapper.errors import ConfigurationError
from usecase_mapper.pipeline import RateLimiter


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestRateLimiter:
    def test_interval_for_fifteen_rpm(self):
        limiter = RateLimiter(15)
        assert limiter.min_interval_ms == pytest.approx(4000.0)
        assert limiter.min_interval_seconds == pytest.approx(4.0)

    def test_instant_call_waits_full_interval(self):
        clock = _FakeClock()
        limiter = RateLimiter(15, clock=clock, sleep=clock.sleep)

        started = limiter.now()
        waited = limiter.wait_after(started)

        assert waited == pytest.approx(4.0)
        assert clock.sleeps == [pytest.approx(4.0)]

    def test_slow_call_absorbs_interval(self):
        clock = _FakeClock()
        limiter = RateLimiter(15, clock=clock, sleep=clock.sleep)

        started = limiter.now()
        clock.now += 4.5
        waited = limiter.wait_after(started)

        assert waited == 0.0
        assert clock.sleeps == []

    def test_partial_elapsed_waits_remainder(self):
        clock = _FakeClock()
        limiter = RateLimiter(30, clock=clock, sleep=clock.sleep)

        started = limiter.now()
        clock.now += 0.5
        assert limiter.wait_seconds(started) == pytest.approx(1.5)

    @pytest.mark.parametrize("rpm", [0, -1])
    def test_rejects_non_positive_rpm(self, rpm):
        with pytest.raises(ConfigurationError):
            RateLimiter(rpm)
