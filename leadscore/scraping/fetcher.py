"""Playwright page fetcher with retry, linear backoff and user-agent rotation.

Each fetch opens a fresh browser context carrying one user agent picked at
random from a pool of desktop browsers. HTTP 403/404 fail fast; timeouts,
navigation errors and other HTTP errors are retried.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from leadscore.errors import PageNotAccessibleError, TransientFetchError

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
)

# Statuses that will not change on retry
NOT_ACCESSIBLE_STATUSES = frozenset({403, 404})

_ACCESSIBILITY_TIMEOUT_SECONDS = 5.0


class PageFetcher:
    """Fetches rendered page markup through a shared Playwright browser."""

    def __init__(
        self,
        browser: Browser,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        user_agents: tuple[str, ...] = USER_AGENTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the fetcher.

        Args:
            browser: Shared Playwright browser instance.
            timeout_seconds: Navigation timeout per attempt.
            max_attempts: Total attempts, including the first.
            retry_delay_seconds: Base delay; attempt N waits N times this.
            user_agents: Pool to rotate through.
            sleep: Coroutine used to wait between attempts.
        """
        self.browser = browser
        self.timeout_ms = int(timeout_seconds * 1000)
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_seconds = retry_delay_seconds
        self.user_agents = user_agents
        self._sleep = sleep

    def pick_user_agent(self) -> str:
        return random.choice(self.user_agents)

    async def fetch(self, url: str) -> str:
        """Fetch a page and return its markup.

        Args:
            url: Absolute URL to fetch.

        Returns:
            HTML content of the page.

        Raises:
            PageNotAccessibleError: On HTTP 403 or 404.
            TransientFetchError: When every attempt failed otherwise.
        """
        user_agent = self.pick_user_agent()
        context = await self._open_context(user_agent)
        last_error: Optional[TransientFetchError] = None

        try:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    return await self._fetch_once(context, url, self.timeout_ms)
                except TransientFetchError as e:
                    last_error = e

                if attempt < self.max_attempts:
                    backoff = self.retry_delay_seconds * attempt  # 1s, 2s
                    logger.warning(
                        "Retry %d/%d for %s (error: %s), waiting %.1fs",
                        attempt, self.max_attempts - 1, url, last_error, backoff,
                    )
                    await self._sleep(backoff)
        finally:
            await _close_quietly(context)

        logger.error("Giving up on %s after %d attempts", url, self.max_attempts)
        raise last_error or TransientFetchError(f"Request failed after all retries: {url}")

    async def is_accessible(self, url: str) -> bool:
        """Single short navigation; True for HTTP 200-399, False on any failure."""
        context: Optional[BrowserContext] = None
        try:
            context = await self._open_context(self.pick_user_agent())
            timeout_ms = int(_ACCESSIBILITY_TIMEOUT_SECONDS * 1000)
            await self._fetch_once(context, url, timeout_ms)
            return True
        except (PageNotAccessibleError, TransientFetchError) as e:
            logger.debug("%s is not accessible: %s", url, e)
            return False
        finally:
            if context is not None:
                await _close_quietly(context)

    async def _open_context(self, user_agent: str) -> BrowserContext:
        try:
            return await self.browser.new_context(user_agent=user_agent)
        except PlaywrightError as e:
            raise TransientFetchError(f"could not open browser context: {str(e)[:300]}") from e

    async def _fetch_once(self, context: BrowserContext, url: str, timeout_ms: int) -> str:
        page: Optional[Page] = None
        try:
            page = await context.new_page()
            response = await page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")
            status = response.status if response else 0

            if status in NOT_ACCESSIBLE_STATUSES:
                raise PageNotAccessibleError(url, status)
            if status >= 400:
                raise TransientFetchError(f"HTTP {status} from {url}")

            return await page.content()

        except PlaywrightTimeout as e:
            raise TransientFetchError(f"timeout after {timeout_ms}ms: {url}") from e
        except PlaywrightError as e:
            raise TransientFetchError(str(e)[:300]) from e

        finally:
            if page:
                await _close_quietly(page)


async def _close_quietly(closable) -> None:
    try:
        await closable.close()
    except PlaywrightError as e:
        logger.debug("Ignoring error while closing %s: %s", type(closable).__name__, e)
