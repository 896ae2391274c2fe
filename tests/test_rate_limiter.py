"""Tests for the per-domain rate limiter."""

import asyncio
import unittest

from leadscore.scraping.rate_limiter import DomainRateLimiter


class FakeClock:
    """Manual clock whose sleep advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestDomainRateLimiter(unittest.IsolatedAsyncioTestCase):
    """Test the fixed 60-per-minute window."""

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = DomainRateLimiter(
            max_requests=60, window_seconds=60.0, clock=self.clock, sleep=self.clock.sleep,
        )

    async def test_budget_allows_sixty_without_delay(self):
        for _ in range(60):
            waited = await self.limiter.acquire("https://example.com/page")
            self.assertEqual(waited, 0.0)
        self.assertEqual(self.clock.sleeps, [])

    async def test_sixty_first_waits_for_window_reset(self):
        for _ in range(60):
            await self.limiter.acquire("https://example.com")
        self.clock.now = 15.0
        waited = await self.limiter.acquire("https://example.com")
        self.assertEqual(waited, 45.0)
        self.assertEqual(self.clock.sleeps, [45.0])

    async def test_new_window_after_expiry(self):
        for _ in range(60):
            await self.limiter.acquire("example.com")
        self.clock.now = 60.0
        self.assertEqual(await self.limiter.acquire("example.com"), 0.0)

    async def test_other_domain_not_affected(self):
        for _ in range(60):
            await self.limiter.acquire("https://busy.example.com")
        self.assertEqual(await self.limiter.acquire("https://quiet.example.org"), 0.0)
        self.assertEqual(self.clock.sleeps, [])

    async def test_blocked_domain_does_not_hold_lock(self):
        gate = asyncio.Event()

        async def wait_forever(_seconds):
            await gate.wait()

        limiter = DomainRateLimiter(
            max_requests=1, window_seconds=60.0, clock=lambda: 0.0, sleep=wait_forever,
        )
        await limiter.acquire("https://a.example.com")
        blocked = asyncio.create_task(limiter.acquire("https://a.example.com"))
        await asyncio.sleep(0)
        self.assertFalse(blocked.done())

        waited = await asyncio.wait_for(limiter.acquire("https://b.example.com"), timeout=1)
        self.assertEqual(waited, 0.0)

        blocked.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await blocked

    async def test_sweep_removes_expired_windows(self):
        await self.limiter.acquire("https://old.example.com")
        self.clock.now = 30.0
        await self.limiter.acquire("https://new.example.com")
        self.clock.now = 61.0
        removed = self.limiter.sweep()
        self.assertEqual(removed, 1)
        self.assertEqual(self.limiter.tracked_domains, ["new.example.com"])

    async def test_context_manager_starts_and_stops_sweeper(self):
        async with self.limiter as limiter:
            self.assertIsNotNone(limiter._sweeper)
            self.assertFalse(limiter._sweeper.done())
        self.assertIsNone(self.limiter._sweeper)


if __name__ == "__main__":
    unittest.main()
