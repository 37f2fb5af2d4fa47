"""Tests for RateLimiter."""

import pytest

from taskmaster_jira_sync.config import RateLimitRule
from taskmaster_jira_sync.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    rules = {"jira": RateLimitRule(requests_per_second=2, burst=3, retry_after=5)}
    return RateLimiter(rules, clock=clock, sleep=clock.sleep)


class TestRateLimiter:
    def test_burst_then_wait(self, limiter, clock):
        assert [limiter.acquire("jira") for _ in range(3)] == [0.0, 0.0, 0.0]

        assert limiter.acquire("jira") == 5
        assert clock.sleeps == [5]
        assert limiter.tokens("jira") == 0

    def test_refill_by_elapsed_time(self, limiter, clock):
        for _ in range(3):
            limiter.acquire("jira")
        clock.now += 1.0

        assert limiter.acquire("jira") == 0.0
        assert limiter.tokens("jira") == 1

    def test_refill_capped_by_burst(self, limiter, clock):
        limiter.acquire("jira")
        clock.now += 60

        limiter.acquire("jira")

        assert limiter.tokens("jira") == 2

    def test_unknown_service_passes(self, limiter, clock):
        assert limiter.acquire("confluence") == 0.0
        assert limiter.tokens("confluence") is None
        assert clock.sleeps == []
