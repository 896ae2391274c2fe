"""In-process repository used in local run mode and in tests."""

import copy
import logging
from collections.abc import Iterable
from typing import Any, Optional

from leadscore.errors import NotFoundError
from leadscore.models import (
    Campaign,
    Lead,
    LeadEnrichment,
    LeadStatus,
    PipelineJob,
    ScoringModel,
    ScoringResult,
    ScrapeAuditEntry,
)
from leadscore.storage.base import LeadRepository, ScrapeAuditLog

logger = logging.getLogger(__name__)


class InMemoryRepository(LeadRepository, ScrapeAuditLog):
    """Dict-backed storage. Nothing survives the process."""

    def __init__(
        self,
        campaigns: Iterable[Campaign] = (),
        scoring_models: Iterable[ScoringModel] = (),
    ):
        self.campaigns: dict[str, Campaign] = {c.id: c for c in campaigns}
        self.scoring_models: dict[str, ScoringModel] = {m.id: m for m in scoring_models}
        self.leads: dict[str, Lead] = {}
        self.enrichments: dict[str, LeadEnrichment] = {}
        self.scoring_results: dict[str, ScoringResult] = {}
        self.pipeline_jobs: dict[str, PipelineJob] = {}
        self.audit_log: list[ScrapeAuditEntry] = []

    def add_campaign(self, campaign: Campaign) -> None:
        self.campaigns[campaign.id] = campaign

    def add_scoring_model(self, model: ScoringModel) -> None:
        self.scoring_models[model.id] = model

    def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return self.campaigns.get(campaign_id)

    def get_scoring_model(self, model_id: str) -> Optional[ScoringModel]:
        return self.scoring_models.get(model_id)

    def create_lead(self, lead: Lead) -> Lead:
        self.leads[lead.id] = lead
        return lead

    def get_lead(self, lead_id: str) -> Optional[Lead]:
        return self.leads.get(lead_id)

    def update_lead(self, lead_id: str, **fields: Any) -> Lead:
        lead = self.leads.get(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead not found: {lead_id}")
        for name, value in fields.items():
            if not hasattr(lead, name):
                raise AttributeError(f"Lead has no field {name!r}")
            setattr(lead, name, value)
        return lead

    def list_leads(
        self,
        campaign_id: str,
        statuses: Iterable[LeadStatus] | None = None,
    ) -> list[Lead]:
        wanted = set(statuses) if statuses is not None else None
        return [
            lead for lead in self.leads.values()
            if lead.campaign_id == campaign_id
            and (wanted is None or lead.status in wanted)
        ]

    def get_enrichment(self, lead_id: str) -> Optional[LeadEnrichment]:
        return self.enrichments.get(lead_id)

    def create_enrichment(self, enrichment: LeadEnrichment) -> LeadEnrichment:
        self.enrichments[enrichment.lead_id] = enrichment
        return enrichment

    def delete_enrichment(self, lead_id: str) -> None:
        self.enrichments.pop(lead_id, None)

    def upsert_scoring_result(self, lead_id: str, result: ScoringResult) -> None:
        self.scoring_results[lead_id] = result

    def get_scoring_result(self, lead_id: str) -> Optional[ScoringResult]:
        return self.scoring_results.get(lead_id)

    def save_pipeline_job(self, job: PipelineJob) -> None:
        self.pipeline_jobs[job.id] = copy.deepcopy(job)

    def get_pipeline_job(self, job_id: str) -> Optional[PipelineJob]:
        job = self.pipeline_jobs.get(job_id)
        return copy.deepcopy(job) if job else None

    def log_scrape(self, entry: ScrapeAuditEntry) -> None:
        self.audit_log.append(entry)
        logger.debug(
            "Audit: scrape %s for %s (%dms)",
            "succeeded" if entry.success else "failed", entry.url, entry.processing_time_ms,
        )
