"""Single-URL and batched scraping.

``scrape_url`` never raises: every failure is folded into a
``ScrapingResult`` with ``success=False``. ``scrape_batch`` scrapes fixed-size
groups concurrently and pauses between groups to stay inside rate budgets.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Optional

from leadscore.errors import ValidationError
from leadscore.models import JobStatus, ScrapeAuditEntry, ScrapingJob, ScrapingResult
from leadscore.scraping.extractor import extract_page
from leadscore.scraping.fetcher import PageFetcher
from leadscore.scraping.rate_limiter import DomainRateLimiter
from leadscore.scraping.urls import normalize_url
from leadscore.storage.base import ScrapeAuditLog

logger = logging.getLogger(__name__)


class WebScraper:
    """Drives normalize → rate limit → fetch → extract for one or many URLs."""

    def __init__(
        self,
        fetcher: PageFetcher,
        rate_limiter: DomainRateLimiter,
        audit_log: Optional[ScrapeAuditLog] = None,
        batch_size: int = 5,
        batch_delay_seconds: float = 2.0,
        max_batch_urls: int = 100,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.audit_log = audit_log
        self.batch_size = max(1, batch_size)
        self.batch_delay_seconds = batch_delay_seconds
        self.max_batch_urls = max_batch_urls
        self._sleep = sleep

    async def scrape_url(self, url: str, industry: Optional[str] = None) -> ScrapingResult:
        """Scrape one URL and extract content, metadata and company fields.

        Args:
            url: Raw URL as supplied by the caller.
            industry: Optional industry hint enabling industry-specific fields.

        Returns:
            ScrapingResult; failures have success=False and an error message.
        """
        started = time.monotonic()
        normalized = normalize_url(url)

        try:
            await self.rate_limiter.acquire(normalized)
            html = await self.fetcher.fetch(normalized)
            content, metadata, structured = extract_page(html, industry)
        except Exception as e:
            elapsed_ms = _elapsed_ms(started)
            message = str(e) or e.__class__.__name__
            logger.warning("Scrape failed for %s after %dms: %s", normalized, elapsed_ms, message)
            self._audit(ScrapeAuditEntry(
                url=url, success=False, processing_time_ms=elapsed_ms, error=message,
            ))
            return ScrapingResult(
                url=normalized,
                success=False,
                error=message,
                processing_time_ms=elapsed_ms,
            )

        elapsed_ms = _elapsed_ms(started)
        logger.info("Scraped %s in %dms (%d chars)", normalized, elapsed_ms, len(content))
        self._audit(ScrapeAuditEntry(url=url, success=True, processing_time_ms=elapsed_ms))
        return ScrapingResult(
            url=normalized,
            success=True,
            content=content,
            metadata=metadata,
            structured_data=structured,
            processing_time_ms=elapsed_ms,
        )

    async def scrape_batch(
        self, urls: list[str], industry: Optional[str] = None
    ) -> ScrapingJob:
        """Scrape many URLs in concurrent groups.

        Groups of ``batch_size`` run concurrently; ``batch_delay_seconds``
        separates consecutive groups, with no pause after the last one.
        Per-URL failures become failed results and never stop the batch.

        Raises:
            ValidationError: If ``urls`` is empty or longer than allowed.
        """
        if not urls:
            raise ValidationError("URLs list is required and must not be empty")
        if len(urls) > self.max_batch_urls:
            raise ValidationError(f"Maximum {self.max_batch_urls} URLs allowed per batch")

        job = ScrapingJob(
            id=f"job_{uuid.uuid4().hex[:12]}",
            urls=list(urls),
            industry=industry or "general",
        )

        try:
            job.status = JobStatus.RUNNING
            logger.info("Batch %s: scraping %d URLs", job.id, len(urls))

            for start in range(0, len(urls), self.batch_size):
                group = urls[start:start + self.batch_size]
                outcomes = await asyncio.gather(
                    *(self.scrape_url(u, industry) for u in group),
                    return_exceptions=True,
                )
                for url, outcome in zip(group, outcomes):
                    if isinstance(outcome, BaseException):
                        logger.error("Unexpected failure scraping %s: %s", url, outcome)
                        outcome = ScrapingResult(
                            url=normalize_url(url),
                            success=False,
                            error=str(outcome) or outcome.__class__.__name__,
                        )
                    job.results.append(outcome)

                if start + self.batch_size < len(urls):
                    await self._sleep(self.batch_delay_seconds)

            job.status = JobStatus.COMPLETED
        except Exception as e:
            logger.error("Batch %s failed: %s", job.id, e, exc_info=True)
            job.status = JobStatus.FAILED
            job.error = str(e)
        finally:
            job.completed_at = datetime.now(timezone.utc)

        logger.info(
            "Batch %s %s: %d succeeded, %d failed",
            job.id, job.status.value, job.successful, job.failed,
        )
        return job

    async def check_url(self, url: str) -> bool:
        """Whether the URL currently answers with a non-error status."""
        return await self.fetcher.is_accessible(normalize_url(url))

    def _audit(self, entry: ScrapeAuditEntry) -> None:
        if self.audit_log is None:
            return
        try:
            self.audit_log.log_scrape(entry)
        except Exception as e:
            logger.error("Failed to write scrape audit entry for %s: %s", entry.url, e)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
