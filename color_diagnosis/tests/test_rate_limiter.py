"""
Tests for rate limiting functionality.

This module tests the RateLimiter class, client IP resolution and the
check_rate_limit helper.
"""

import asyncio
import unittest
from unittest.mock import MagicMock

from color_diagnosis.errors import RateLimited
from color_diagnosis.rate_limiter import (
    RateLimiter,
    RateRecord,
    check_rate_limit,
    client_identifier,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestRateLimiter(unittest.TestCase):
    """Test the RateLimiter class."""

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(max_requests=10, window_seconds=3600, clock=self.clock)

    def test_init(self):
        """Test rate limiter initialization."""
        self.assertEqual(self.limiter.max_requests, 10)
        self.assertEqual(self.limiter.window_seconds, 3600)
        self.assertEqual(self.limiter.records, {})

    def test_first_request_creates_record(self):
        self.assertTrue(self.limiter.admit("127.0.0.1"))
        self.assertEqual(self.limiter.records["127.0.0.1"], RateRecord(window_start=1000.0, count=1))

    def test_ten_admitted_eleventh_rejected(self):
        """Client 1.2.3.4 sends 10 rapid requests, then an 11th."""
        for _ in range(10):
            self.assertTrue(self.limiter.admit("1.2.3.4"))
        self.assertFalse(self.limiter.admit("1.2.3.4"))

    def test_rejection_does_not_mutate(self):
        for _ in range(10):
            self.limiter.admit("1.2.3.4")
        self.limiter.admit("1.2.3.4")
        self.limiter.admit("1.2.3.4")
        self.assertEqual(self.limiter.records["1.2.3.4"].count, 10)

    def test_different_ips_have_separate_limits(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=self.clock)
        for _ in range(3):
            limiter.admit("192.168.1.1")
        self.assertFalse(limiter.admit("192.168.1.1"))
        self.assertTrue(limiter.admit("192.168.1.2"))

    def test_window_reset(self):
        """After the window elapses the next request is admitted and count restarts."""
        for _ in range(10):
            self.limiter.admit("1.2.3.4")
        self.assertFalse(self.limiter.admit("1.2.3.4"))

        self.clock.advance(3600.5)

        self.assertTrue(self.limiter.admit("1.2.3.4"))
        record = self.limiter.records["1.2.3.4"]
        self.assertEqual(record.count, 1)
        self.assertEqual(record.window_start, self.clock.now)

    def test_window_boundary_is_exclusive(self):
        """Exactly windowDuration after the start is still the same window."""
        for _ in range(10):
            self.limiter.admit("1.2.3.4")
        self.clock.advance(3600)
        self.assertFalse(self.limiter.admit("1.2.3.4"))

    def test_retry_after(self):
        for _ in range(10):
            self.limiter.admit("1.2.3.4")
        self.clock.advance(600)
        self.assertEqual(self.limiter.retry_after("1.2.3.4"), 3001)
        self.assertEqual(self.limiter.retry_after("5.6.7.8"), 0)

    def test_reset(self):
        """Test that reset clears rate limit for identifier."""
        for _ in range(10):
            self.limiter.admit("127.0.0.1")
        self.limiter.reset("127.0.0.1")
        self.assertTrue(self.limiter.admit("127.0.0.1"))
        self.limiter.reset("never-seen")

    def test_sweep_removes_only_expired(self):
        self.limiter.admit("old")
        self.clock.advance(3000)
        self.limiter.admit("new")
        self.clock.advance(700)

        removed = self.limiter.sweep()

        self.assertEqual(removed, 1)
        self.assertNotIn("old", self.limiter.records)
        self.assertIn("new", self.limiter.records)


class TestSweeperTask(unittest.TestCase):
    """Test the background sweep lifecycle."""

    def test_sweeper_runs_and_stops(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)

        async def scenario():
            limiter.admit("10.0.0.1")
            clock.advance(120)
            task = limiter.start_sweeper(interval_seconds=0.01)
            await asyncio.sleep(0.05)
            swept = "10.0.0.1" not in limiter.records
            await limiter.stop_sweeper()
            return task, swept

        task, swept = asyncio.run(scenario())
        self.assertTrue(swept)
        self.assertTrue(task.cancelled())
        self.assertIsNone(limiter._sweeper)

    def test_stop_without_start(self):
        limiter = RateLimiter()
        asyncio.run(limiter.stop_sweeper())


class TestClientIdentifier(unittest.TestCase):

    def test_ignores_forwarded_header_by_default(self):
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "10.0.0.1, 192.168.1.1"}
        request.client.host = "127.0.0.1"
        self.assertEqual(client_identifier(request), "127.0.0.1")

    def test_untrusted_peer_header_ignored(self):
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "10.0.0.1"}
        request.client.host = "203.0.113.7"
        self.assertEqual(client_identifier(request, ["127.0.0.1"]), "203.0.113.7")

    def test_trusted_peer_uses_first_forwarded_hop(self):
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "10.0.0.1, 192.168.1.1"}
        request.client.host = "127.0.0.1"
        self.assertEqual(client_identifier(request, ["127.0.0.1"]), "10.0.0.1")

    def test_wildcard_trusts_any_peer(self):
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "10.0.0.1"}
        request.client.host = "198.51.100.2"
        self.assertEqual(client_identifier(request, ["*"]), "10.0.0.1")

    def test_trusted_peer_without_header(self):
        request = MagicMock()
        request.headers = {}
        request.client.host = "127.0.0.1"
        self.assertEqual(client_identifier(request, ["127.0.0.1"]), "127.0.0.1")

    def test_falls_back_to_peer(self):
        request = MagicMock()
        request.headers = {}
        request.client.host = "127.0.0.1"
        self.assertEqual(client_identifier(request), "127.0.0.1")

    def test_unknown_without_client(self):
        request = MagicMock()
        request.headers = {}
        request.client = None
        self.assertEqual(client_identifier(request), "unknown")


class TestCheckRateLimit(unittest.TestCase):

    def test_allowed_returns_none(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        self.assertIsNone(check_rate_limit(limiter, "1.2.3.4"))

    def test_denied_raises_with_retry_after(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        check_rate_limit(limiter, "1.2.3.4")

        with self.assertRaises(RateLimited) as context:
            check_rate_limit(limiter, "1.2.3.4")

        self.assertEqual(context.exception.status_code, 429)
        self.assertEqual(context.exception.headers["Retry-After"], "61")


if __name__ == "__main__":
    unittest.main()
