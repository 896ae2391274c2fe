"""Service wiring for the lead pipeline.

Builds the repository, notifier, Playwright browser, rate limiter, scraper,
scoring engine and pipeline orchestrator from configuration, and exposes
one coroutine per CLI command.

Run modes:
- local: in-memory repository seeded from the campaign catalogue.
- cloud: BigQuery repository; campaigns and scoring models live there.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from playwright.async_api import async_playwright

from leadscore import notifications
from leadscore.config import ScrapingSettings, load_campaigns
from leadscore.errors import ValidationError
from leadscore.models import CampaignScoringSummary, PipelineJob, ScrapingJob, ScrapingResult
from leadscore.notifications import CompositeNotifier, LoggingNotifier, Notifier, WebhookNotifier
from leadscore.pipeline import PipelineOrchestrator
from leadscore.scoring.engine import ScoringEngine
from leadscore.scraping.fetcher import PageFetcher
from leadscore.scraping.rate_limiter import DomainRateLimiter
from leadscore.scraping.scraper import WebScraper
from leadscore.storage.base import LeadRepository, ScrapeAuditLog
from leadscore.storage.bigquery_client import BigQueryRepository
from leadscore.storage.memory import InMemoryRepository

logger = logging.getLogger(__name__)


@dataclass
class Services:
    repository: LeadRepository
    scraper: WebScraper
    scoring_engine: ScoringEngine
    pipeline: PipelineOrchestrator


def build_repository(config: dict[str, Any]) -> LeadRepository:
    """Repository for the configured run mode."""
    run_mode = config.get("run_mode", "local")
    if run_mode == "cloud":
        gcp = config["gcp"]
        repo = BigQueryRepository(
            project_id=gcp["project_id"],
            dataset_id=gcp["bigquery_dataset"],
            location=gcp.get("region", "us-east4"),
        )
        repo.ensure_tables_exist()
        return repo

    campaigns, models = load_campaigns(config) if config.get("campaigns_path") else ([], [])
    logger.info("Using in-memory repository (%d campaigns)", len(campaigns))
    return InMemoryRepository(campaigns=campaigns, scoring_models=models)


def build_notifier(config: dict[str, Any]) -> Notifier:
    """Log every event; also POST to a webhook when one is configured."""
    section = config.get("notifications") or {}
    notifiers: list[Notifier] = [LoggingNotifier()]
    if section.get("webhook_url"):
        notifiers.append(
            WebhookNotifier(
                section["webhook_url"],
                timeout_seconds=float(section.get("timeout_seconds", 5.0)),
            )
        )
    return CompositeNotifier(notifiers)


@asynccontextmanager
async def open_services(
    config: dict[str, Any],
    repository: Optional[LeadRepository] = None,
    notifier: Optional[Notifier] = None,
) -> AsyncIterator[Services]:
    """Launch a shared browser and rate limiter for the duration of a run."""
    settings = ScrapingSettings.from_config(config)
    repository = repository or build_repository(config)
    notifier = notifier or build_notifier(config)
    audit_log = repository if isinstance(repository, ScrapeAuditLog) else None

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=settings.headless)
        logger.info("Browser launched (headless=%s)", settings.headless)
        try:
            async with DomainRateLimiter(
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            ) as rate_limiter:
                fetcher = PageFetcher(
                    browser,
                    timeout_seconds=settings.timeout_seconds,
                    max_attempts=settings.max_attempts,
                    retry_delay_seconds=settings.retry_delay_seconds,
                )
                scraper = WebScraper(
                    fetcher,
                    rate_limiter,
                    audit_log=audit_log,
                    batch_size=settings.batch_size,
                    batch_delay_seconds=settings.batch_delay_seconds,
                    max_batch_urls=settings.max_batch_urls,
                )
                scoring_engine = ScoringEngine(repository)
                yield Services(
                    repository=repository,
                    scraper=scraper,
                    scoring_engine=scoring_engine,
                    pipeline=PipelineOrchestrator(repository, scraper, scoring_engine, notifier),
                )
        finally:
            await browser.close()


async def run_scrape(config: dict[str, Any], url: str, industry: Optional[str] = None) -> ScrapingResult:
    async with open_services(config) as services:
        return await services.scraper.scrape_url(url, industry)


async def run_batch(
    config: dict[str, Any], urls: list[str], industry: Optional[str] = None
) -> ScrapingJob:
    async with open_services(config) as services:
        return await services.scraper.scrape_batch(urls, industry)


async def run_check(config: dict[str, Any], url: str) -> bool:
    async with open_services(config) as services:
        return await services.scraper.check_url(url)


async def run_pipeline(
    config: dict[str, Any],
    urls: list[str],
    campaign_id: str,
    industry: Optional[str] = None,
) -> PipelineJob:
    """Run the full URL → lead → score pipeline for one campaign."""
    async with open_services(config) as services:
        return await services.pipeline.process_urls(urls, campaign_id, industry)


async def run_score_campaign(
    config: dict[str, Any],
    campaign_id: str,
    repository: Optional[LeadRepository] = None,
    notifier: Optional[Notifier] = None,
) -> CampaignScoringSummary:
    """Re-score a campaign's RAW and SCORED leads. No browser needed.

    Leads only outlive a run in cloud mode, so building a local repository
    here is refused rather than reporting an empty campaign.

    Raises:
        ValidationError: If no repository is given and run_mode is not cloud.
    """
    if repository is None:
        if config.get("run_mode", "local") != "cloud":
            raise ValidationError(
                "score-campaign requires run_mode: cloud; "
                "the local in-memory repository holds no leads between runs"
            )
        repository = build_repository(config)
    notifier = notifier or build_notifier(config)
    summary = ScoringEngine(repository).score_campaign_leads(campaign_id)
    await notifier.notify(
        notifications.CAMPAIGN_SCORED,
        "Campaign Scored",
        f"Scored {summary.scored_leads}/{summary.total_leads} leads, "
        f"{summary.qualified_leads} qualified",
        {"campaign_id": campaign_id, **summary.to_dict()},
    )
    return summary
