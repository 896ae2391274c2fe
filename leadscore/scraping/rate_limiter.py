"""
Per-domain request budget shared by all scrapes in this process.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from leadscore.scraping.urls import extract_domain

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class DomainRateLimiter:
    """
    Fixed-window budget of ``max_requests`` per domain per ``window_seconds``.

    The map of windows is owned by the limiter and only mutated under its
    lock. The lock is never held while a caller waits for a window to
    reset, so a throttled domain does not delay any other domain.
    """

    def __init__(
        self,
        *,
        max_requests: int = 60,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._max_requests = max(1, max_requests)
        self._window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._sweeper: asyncio.Task | None = None

    async def __aenter__(self) -> DomainRateLimiter:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def tracked_domains(self) -> list[str]:
        return list(self._windows)

    async def acquire(self, url: str) -> float:
        """
        Wait until a request to the URL's domain fits the budget.

        Returns the total number of seconds spent waiting.
        """

        domain = extract_domain(url)
        if not domain:
            return 0.0

        waited = 0.0
        while True:
            async with self._lock:
                wait_seconds = self._try_reserve(domain)
            if wait_seconds <= 0:
                return waited
            logger.info(
                "Rate limit reached for %s, waiting %.1fs for window reset",
                domain, wait_seconds,
            )
            await self._sleep(wait_seconds)
            waited += wait_seconds

    def _try_reserve(self, domain: str) -> float:
        now = self._clock()
        window = self._windows.get(domain)
        if window is None or now >= window.reset_at:
            self._windows[domain] = _Window(count=1, reset_at=now + self._window_seconds)
            return 0.0
        if window.count < self._max_requests:
            window.count += 1
            return 0.0
        return window.reset_at - now

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        expired = [d for d, w in self._windows.items() if now >= w.reset_at]
        for domain in expired:
            del self._windows[domain]
        if expired:
            logger.debug("Swept %d expired rate-limit windows", len(expired))
        return len(expired)

    def start(self) -> None:
        """Launch the background sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever())

    async def close(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._window_seconds)
            async with self._lock:
                self.sweep()
