"""Pipeline orchestrator: URL → lead → enrichment → score.

URLs are processed one at a time so progress counters only ever grow and
can be reported after every URL:

1. Check the campaign has a scoring model; otherwise fail the job before
   creating anything.
2. For each URL: create a RAW lead, scrape and persist enrichment, score
   and persist the result, then publish progress.
3. Publish completion (or failure) with the per-URL results.

A failing URL is recorded in the job's results and never stops its
siblings. Only an error outside the per-URL handling fails the job.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from leadscore import notifications
from leadscore.errors import ScrapingError, ValidationError
from leadscore.models import (
    JobStatus,
    Lead,
    LeadEnrichment,
    LeadStatus,
    PipelineJob,
    PipelineProgress,
    PipelineUrlResult,
    ScoringModel,
    ScrapingResult,
)
from leadscore.notifications import Notifier
from leadscore.scoring.engine import ScoringEngine
from leadscore.scraping.extractor import MAX_CONTENT_CHARS
from leadscore.scraping.scraper import WebScraper
from leadscore.scraping.urls import extract_domain, normalize_url
from leadscore.storage.base import LeadRepository

logger = logging.getLogger(__name__)


def build_enrichment(
    lead_id: str, result: ScrapingResult, industry: Optional[str] = None
) -> LeadEnrichment:
    """Map a successful scrape onto an enrichment record."""
    structured = result.structured_data
    contact = structured.contact_info
    return LeadEnrichment(
        lead_id=lead_id,
        industry=structured.industry or industry or "Unknown",
        company_name=structured.company_name,
        scraped_content=result.content[:MAX_CONTENT_CHARS],
        page_title=result.metadata.title,
        page_description=result.metadata.description,
        page_keywords=list(result.metadata.keywords),
        page_language=result.metadata.language,
        last_modified=result.metadata.last_modified,
        services=list(structured.services),
        technologies=list(structured.technologies),
        certifications=list(structured.certifications),
        contact_email=contact.email,
        contact_phone=contact.phone,
        contact_address=contact.address,
        processing_time_ms=result.processing_time_ms,
    )


class PipelineOrchestrator:
    """Runs URL lists through scraping, enrichment and scoring for a campaign."""

    def __init__(
        self,
        repository: LeadRepository,
        scraper: WebScraper,
        scoring_engine: ScoringEngine,
        notifier: Notifier,
    ):
        self.repository = repository
        self.scraper = scraper
        self.scoring_engine = scoring_engine
        self.notifier = notifier

    async def process_urls(
        self,
        urls: list[str],
        campaign_id: str,
        industry: Optional[str] = None,
    ) -> PipelineJob:
        """Process every URL for the campaign and return the finished job.

        Args:
            urls: Candidate company URLs.
            campaign_id: Campaign whose scoring model is applied.
            industry: Optional industry hint for extraction.

        Returns:
            PipelineJob with status completed or failed.

        Raises:
            ValidationError: If no URLs or no campaign id were given.
        """
        if not urls:
            raise ValidationError("At least one URL is required")
        if not campaign_id or not campaign_id.strip():
            raise ValidationError("Campaign id is required")

        job = PipelineJob(
            id=f"pipeline_{uuid.uuid4().hex[:12]}",
            campaign_id=campaign_id,
            urls=list(urls),
            progress=PipelineProgress(total=len(urls)),
        )

        try:
            campaign, model = self.scoring_engine.load_campaign_model(campaign_id)

            job.status = JobStatus.RUNNING
            job.started_at = datetime.now(timezone.utc)
            self._save(job)
            logger.info(
                "Pipeline %s started: %d URLs for campaign %s",
                job.id, len(urls), campaign.name,
            )
            await self._emit(
                notifications.PIPELINE_STARTED,
                "Pipeline Started",
                f"Processing {len(urls)} URLs for campaign: {campaign.name}",
                {"job_id": job.id, "campaign_id": campaign_id, "total_urls": len(urls)},
            )

            for index, url in enumerate(urls, 1):
                await self._process_url(job, url, model, industry)
                await self._emit(
                    notifications.PIPELINE_PROGRESS,
                    "Pipeline Progress",
                    f"Processed {job.progress.processed}/{job.progress.total} URLs",
                    {
                        "job_id": job.id,
                        "progress": job.progress.to_dict(),
                        "current_url": url,
                        "current_index": index,
                    },
                )

            job.status = JobStatus.COMPLETED
            job.completed_at = datetime.now(timezone.utc)
            logger.info(
                "Pipeline %s completed: processed=%d scraped=%d scored=%d qualified=%d",
                job.id, job.progress.processed, job.progress.scraped,
                job.progress.scored, job.progress.qualified,
            )
            await self._emit(
                notifications.PIPELINE_COMPLETED,
                "Pipeline Completed",
                f"Successfully processed {job.progress.processed} URLs. "
                f"{job.progress.qualified} leads qualified.",
                {
                    "job_id": job.id,
                    "results": [r.to_dict() for r in job.results],
                    "summary": job.progress.to_dict(),
                },
            )

        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            job.completed_at = datetime.now(timezone.utc)
            logger.error("Pipeline %s failed: %s", job.id, e)
            await self._emit(
                notifications.PIPELINE_FAILED,
                "Pipeline Failed",
                f"Pipeline failed: {job.error}",
                {"job_id": job.id, "error": job.error},
            )

        self._save(job)
        return job

    def get_job(self, job_id: str) -> Optional[PipelineJob]:
        return self.repository.get_pipeline_job(job_id)

    async def _process_url(
        self,
        job: PipelineJob,
        url: str,
        model: ScoringModel,
        industry: Optional[str],
    ) -> None:
        lead: Optional[Lead] = None
        try:
            lead = self._create_lead(url, job.campaign_id, industry)
            job.progress.processed += 1
            await self._emit(
                notifications.LEAD_CREATED,
                "Lead Created",
                f"Created lead for {lead.domain}",
                {"lead_id": lead.id, "campaign_id": job.campaign_id, "url": lead.url},
            )

            await self._scrape_and_enrich(lead, url, industry)
            job.progress.scraped += 1

            result = self.scoring_engine.score_lead(lead.id, model.id)
            self.scoring_engine.save_scoring_result(
                lead.id, result, model.qualification_threshold
            )
            job.progress.scored += 1

            qualified = model.is_qualified(result.total_score)
            if qualified:
                job.progress.qualified += 1

            job.results.append(PipelineUrlResult(
                url=url,
                status="success",
                lead_id=lead.id,
                score=result.total_score,
                qualified=qualified,
            ))
            await self._emit(
                notifications.LEAD_SCORED,
                "Lead Scored",
                f"{url} scored {result.total_score}",
                {"lead_id": lead.id, "score": result.total_score, "qualified": qualified},
            )

        except Exception as e:
            logger.error("Failed to process URL %s: %s", url, e)
            job.results.append(PipelineUrlResult(
                url=url,
                status="failed",
                lead_id=lead.id if lead else None,
                error=str(e) or e.__class__.__name__,
            ))

    def _create_lead(self, url: str, campaign_id: str, industry: Optional[str]) -> Lead:
        normalized = normalize_url(url)
        domain = extract_domain(normalized)
        if not domain:
            raise ValidationError(f"Cannot determine a domain for {url!r}")
        lead = self.repository.create_lead(Lead(
            id=str(uuid.uuid4()),
            campaign_id=campaign_id,
            url=normalized,
            domain=domain,
            company_name=domain,
            industry=industry or "Unknown",
            status=LeadStatus.RAW,
        ))
        logger.debug("Created lead %s for %s", lead.id, normalized)
        return lead

    async def _scrape_and_enrich(
        self, lead: Lead, url: str, industry: Optional[str]
    ) -> LeadEnrichment:
        self.repository.delete_enrichment(lead.id)

        result = await self.scraper.scrape_url(url, industry)
        if not result.success:
            raise ScrapingError(f"Failed to scrape {url}: {result.error}")

        enrichment = self.repository.create_enrichment(
            build_enrichment(lead.id, result, industry)
        )
        if result.structured_data.company_name:
            self.repository.update_lead(lead.id, company_name=result.structured_data.company_name)
        return enrichment

    def _save(self, job: PipelineJob) -> None:
        try:
            self.repository.save_pipeline_job(job)
        except Exception as e:
            logger.error("Could not save pipeline job %s: %s", job.id, e)

    async def _emit(self, event_type: str, title: str, message: str, data: dict[str, Any]) -> None:
        try:
            await self.notifier.notify(event_type, title, message, data)
        except Exception as e:
            logger.warning("Notification %s dropped: %s", event_type, e)
