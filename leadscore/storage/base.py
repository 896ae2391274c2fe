"""
Persistence and audit contracts consumed by the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Optional

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


class ScrapeAuditLog(ABC):
    """
    Append-only record of scraping attempts.
    """

    @abstractmethod
    def log_scrape(self, entry: ScrapeAuditEntry) -> None:
        """
        Append one scraping attempt.
        """


class LeadRepository(ABC):
    """
    Storage for campaigns, scoring models, leads, enrichment, scores and jobs.
    """

    # Campaigns and scoring models

    @abstractmethod
    def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        ...

    @abstractmethod
    def get_scoring_model(self, model_id: str) -> Optional[ScoringModel]:
        ...

    # Leads

    @abstractmethod
    def create_lead(self, lead: Lead) -> Lead:
        ...

    @abstractmethod
    def get_lead(self, lead_id: str) -> Optional[Lead]:
        ...

    @abstractmethod
    def update_lead(self, lead_id: str, **fields: Any) -> Lead:
        """
        Set the given fields on a lead and return the updated record.
        """

    @abstractmethod
    def list_leads(
        self,
        campaign_id: str,
        statuses: Iterable[LeadStatus] | None = None,
    ) -> list[Lead]:
        ...

    # Enrichment: replaced by delete-then-create

    @abstractmethod
    def get_enrichment(self, lead_id: str) -> Optional[LeadEnrichment]:
        ...

    @abstractmethod
    def create_enrichment(self, enrichment: LeadEnrichment) -> LeadEnrichment:
        ...

    @abstractmethod
    def delete_enrichment(self, lead_id: str) -> None:
        ...

    # Scoring results: one per lead, upserted

    @abstractmethod
    def upsert_scoring_result(self, lead_id: str, result: ScoringResult) -> None:
        ...

    @abstractmethod
    def get_scoring_result(self, lead_id: str) -> Optional[ScoringResult]:
        ...

    # Pipeline jobs

    @abstractmethod
    def save_pipeline_job(self, job: PipelineJob) -> None:
        ...

    @abstractmethod
    def get_pipeline_job(self, job_id: str) -> Optional[PipelineJob]:
        ...
