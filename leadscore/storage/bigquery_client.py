"""BigQuery-backed repository for the lead pipeline.

Mutable tables (leads, enrichment, scoring results, jobs) are written with
parameterized DML so rows can be updated or replaced straight away. The
append-only scrape audit log uses streaming inserts.
"""

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Optional

from google.cloud import bigquery
from google.cloud.exceptions import NotFound

from leadscore.errors import NotFoundError
from leadscore.models import (
    Campaign,
    CriterionScore,
    CriterionType,
    Lead,
    LeadEnrichment,
    LeadStatus,
    PipelineJob,
    ScoringCriterion,
    ScoringModel,
    ScoringResult,
    ScrapeAuditEntry,
)
from leadscore.storage.base import LeadRepository, ScrapeAuditLog
from leadscore.storage.schema import TABLE_SCHEMAS

logger = logging.getLogger(__name__)

# Lead fields that update_lead may set, with their BigQuery types
_LEAD_UPDATABLE = {
    "company_name": "STRING",
    "industry": "STRING",
    "status": "STRING",
    "score": "INT64",
    "last_scored_at": "TIMESTAMP",
}


def _param(name: str, type_: str, value: Any) -> bigquery.ScalarQueryParameter:
    return bigquery.ScalarQueryParameter(name, type_, value)


class BigQueryRepository(LeadRepository, ScrapeAuditLog):
    """Repository and audit log over a single BigQuery dataset."""

    def __init__(self, project_id: str, dataset_id: str, location: str = "us-east4"):
        self.project_id = project_id
        self.dataset_id = dataset_id
        self.location = location
        self.client = bigquery.Client(project=project_id)
        self.dataset_ref = f"{project_id}.{dataset_id}"

    def ensure_tables_exist(self) -> None:
        """Create dataset and all tables if they don't exist."""
        dataset = bigquery.Dataset(self.dataset_ref)
        dataset.location = self.location
        try:
            self.client.get_dataset(self.dataset_ref)
            logger.info("Dataset %s already exists", self.dataset_ref)
        except NotFound:
            self.client.create_dataset(dataset)
            logger.info("Created dataset %s", self.dataset_ref)

        for table_name, schema in TABLE_SCHEMAS.items():
            table_ref = f"{self.dataset_ref}.{table_name}"
            table = bigquery.Table(table_ref, schema=schema)
            try:
                self.client.get_table(table_ref)
                logger.debug("Table %s already exists", table_ref)
            except NotFound:
                self.client.create_table(table)
                logger.info("Created table %s", table_ref)

    def _table(self, name: str) -> str:
        return f"`{self.dataset_ref}.{name}`"

    def _query(self, query: str, params: list[bigquery.ScalarQueryParameter]) -> list[Any]:
        job_config = bigquery.QueryJobConfig(query_parameters=params)
        return list(self.client.query(query, job_config=job_config).result())

    # ── Campaigns and scoring models ───────────────────────────────

    def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        rows = self._query(
            f"SELECT * FROM {self._table('campaigns')} WHERE campaign_id = @id LIMIT 1",
            [_param("id", "STRING", campaign_id)],
        )
        if not rows:
            return None
        row = rows[0]
        return Campaign(
            id=row["campaign_id"],
            name=row["name"],
            scoring_model_id=row["scoring_model_id"],
            industry=row["industry"],
        )

    def get_scoring_model(self, model_id: str) -> Optional[ScoringModel]:
        rows = self._query(
            f"SELECT * FROM {self._table('scoring_models')} WHERE model_id = @id LIMIT 1",
            [_param("id", "STRING", model_id)],
        )
        if not rows:
            return None
        row = rows[0]
        criteria = [
            ScoringCriterion(
                id=c["id"],
                name=c.get("name", c["id"]),
                type=CriterionType(c["type"]),
                search_terms=list(c.get("search_terms", [])),
                weight=float(c.get("weight", 0)),
            )
            for c in json.loads(row["criteria_json"] or "[]")
        ]
        model = ScoringModel(
            id=row["model_id"],
            name=row["name"],
            industry=row["industry"] or "general",
            criteria=criteria,
            is_active=row["is_active"] if row["is_active"] is not None else True,
        )
        if row["qualification_threshold"] is not None:
            model.qualification_threshold = row["qualification_threshold"]
        return model

    # ── Leads ──────────────────────────────────────────────────────

    def create_lead(self, lead: Lead) -> Lead:
        self._query(
            f"""
            INSERT INTO {self._table('leads')}
                (lead_id, campaign_id, url, domain, company_name, industry,
                 status, score, created_at, last_scored_at)
            VALUES (@lead_id, @campaign_id, @url, @domain, @company_name, @industry,
                    @status, @score, @created_at, @last_scored_at)
            """,
            [
                _param("lead_id", "STRING", lead.id),
                _param("campaign_id", "STRING", lead.campaign_id),
                _param("url", "STRING", lead.url),
                _param("domain", "STRING", lead.domain),
                _param("company_name", "STRING", lead.company_name),
                _param("industry", "STRING", lead.industry),
                _param("status", "STRING", lead.status.value),
                _param("score", "INT64", lead.score),
                _param("created_at", "TIMESTAMP", lead.created_at),
                _param("last_scored_at", "TIMESTAMP", lead.last_scored_at),
            ],
        )
        logger.debug("Inserted lead %s", lead.id)
        return lead

    def get_lead(self, lead_id: str) -> Optional[Lead]:
        rows = self._query(
            f"SELECT * FROM {self._table('leads')} WHERE lead_id = @id LIMIT 1",
            [_param("id", "STRING", lead_id)],
        )
        return _lead_from_row(rows[0]) if rows else None

    def update_lead(self, lead_id: str, **fields: Any) -> Lead:
        unknown = set(fields) - set(_LEAD_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update lead fields: {sorted(unknown)}")

        if fields:
            assignments = ", ".join(f"{name} = @{name}" for name in fields)
            params = [_param("lead_id", "STRING", lead_id)]
            for name, value in fields.items():
                if isinstance(value, LeadStatus):
                    value = value.value
                params.append(_param(name, _LEAD_UPDATABLE[name], value))
            self._query(
                f"UPDATE {self._table('leads')} SET {assignments} WHERE lead_id = @lead_id",
                params,
            )

        lead = self.get_lead(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead not found: {lead_id}")
        return lead

    def list_leads(
        self,
        campaign_id: str,
        statuses: Iterable[LeadStatus] | None = None,
    ) -> list[Lead]:
        query = f"SELECT * FROM {self._table('leads')} WHERE campaign_id = @campaign_id"
        params: list[Any] = [_param("campaign_id", "STRING", campaign_id)]
        if statuses is not None:
            query += " AND status IN UNNEST(@statuses)"
            params.append(
                bigquery.ArrayQueryParameter("statuses", "STRING", [s.value for s in statuses])
            )
        query += " ORDER BY created_at"
        return [_lead_from_row(row) for row in self._query(query, params)]

    # ── Enrichment ─────────────────────────────────────────────────

    def get_enrichment(self, lead_id: str) -> Optional[LeadEnrichment]:
        rows = self._query(
            f"SELECT * FROM {self._table('lead_enrichments')} WHERE lead_id = @id LIMIT 1",
            [_param("id", "STRING", lead_id)],
        )
        if not rows:
            return None
        row = rows[0]
        return LeadEnrichment(
            lead_id=row["lead_id"],
            industry=row["industry"] or "Unknown",
            company_name=row["company_name"],
            scraped_content=row["scraped_content"] or "",
            page_title=row["page_title"] or "",
            page_description=row["page_description"] or "",
            page_keywords=json.loads(row["page_keywords_json"] or "[]"),
            page_language=row["page_language"] or "en",
            last_modified=row["last_modified"],
            services=json.loads(row["services_json"] or "[]"),
            technologies=json.loads(row["technologies_json"] or "[]"),
            certifications=json.loads(row["certifications_json"] or "[]"),
            contact_email=row["contact_email"],
            contact_phone=row["contact_phone"],
            contact_address=row["contact_address"],
            processing_time_ms=row["processing_time_ms"] or 0,
            source=row["source"] or "WEB_SCRAPING",
            created_at=row["created_at"],
        )

    def create_enrichment(self, enrichment: LeadEnrichment) -> LeadEnrichment:
        self._query(
            f"""
            INSERT INTO {self._table('lead_enrichments')}
                (lead_id, industry, company_name, scraped_content, page_title,
                 page_description, page_keywords_json, page_language, last_modified,
                 services_json, technologies_json, certifications_json,
                 contact_email, contact_phone, contact_address,
                 processing_time_ms, source, created_at)
            VALUES (@lead_id, @industry, @company_name, @scraped_content, @page_title,
                    @page_description, @page_keywords_json, @page_language, @last_modified,
                    @services_json, @technologies_json, @certifications_json,
                    @contact_email, @contact_phone, @contact_address,
                    @processing_time_ms, @source, @created_at)
            """,
            [
                _param("lead_id", "STRING", enrichment.lead_id),
                _param("industry", "STRING", enrichment.industry),
                _param("company_name", "STRING", enrichment.company_name),
                _param("scraped_content", "STRING", enrichment.scraped_content),
                _param("page_title", "STRING", enrichment.page_title),
                _param("page_description", "STRING", enrichment.page_description),
                _param("page_keywords_json", "STRING", json.dumps(enrichment.page_keywords)),
                _param("page_language", "STRING", enrichment.page_language),
                _param("last_modified", "STRING", enrichment.last_modified),
                _param("services_json", "STRING", json.dumps(enrichment.services)),
                _param("technologies_json", "STRING", json.dumps(enrichment.technologies)),
                _param("certifications_json", "STRING", json.dumps(enrichment.certifications)),
                _param("contact_email", "STRING", enrichment.contact_email),
                _param("contact_phone", "STRING", enrichment.contact_phone),
                _param("contact_address", "STRING", enrichment.contact_address),
                _param("processing_time_ms", "INT64", enrichment.processing_time_ms),
                _param("source", "STRING", enrichment.source),
                _param("created_at", "TIMESTAMP", enrichment.created_at),
            ],
        )
        logger.debug("Inserted enrichment for lead %s", enrichment.lead_id)
        return enrichment

    def delete_enrichment(self, lead_id: str) -> None:
        self._query(
            f"DELETE FROM {self._table('lead_enrichments')} WHERE lead_id = @id",
            [_param("id", "STRING", lead_id)],
        )

    # ── Scoring results ────────────────────────────────────────────

    def upsert_scoring_result(self, lead_id: str, result: ScoringResult) -> None:
        """Replace the lead's scoring result in one MERGE statement."""
        criteria_json = json.dumps([cs.to_dict() for cs in result.criteria_scores])
        self._query(
            f"""
            MERGE {self._table('scoring_results')} T
            USING (SELECT @lead_id AS lead_id) S
            ON T.lead_id = S.lead_id
            WHEN MATCHED THEN UPDATE SET
                scoring_model_id = @scoring_model_id,
                total_score = @total_score,
                confidence = @confidence,
                criteria_scores_json = @criteria_scores_json,
                created_at = @created_at
            WHEN NOT MATCHED THEN INSERT
                (lead_id, scoring_model_id, total_score, confidence,
                 criteria_scores_json, created_at)
            VALUES (@lead_id, @scoring_model_id, @total_score, @confidence,
                    @criteria_scores_json, @created_at)
            """,
            [
                _param("lead_id", "STRING", lead_id),
                _param("scoring_model_id", "STRING", result.scoring_model_id),
                _param("total_score", "INT64", result.total_score),
                _param("confidence", "INT64", result.confidence),
                _param("criteria_scores_json", "STRING", criteria_json),
                _param("created_at", "TIMESTAMP", result.created_at),
            ],
        )
        logger.debug("Upserted scoring result for lead %s", lead_id)

    def get_scoring_result(self, lead_id: str) -> Optional[ScoringResult]:
        rows = self._query(
            f"SELECT * FROM {self._table('scoring_results')} WHERE lead_id = @id LIMIT 1",
            [_param("id", "STRING", lead_id)],
        )
        if not rows:
            return None
        row = rows[0]
        return ScoringResult(
            total_score=row["total_score"],
            confidence=row["confidence"],
            criteria_scores=[
                CriterionScore(**cs) for cs in json.loads(row["criteria_scores_json"])
            ],
            scoring_model_id=row["scoring_model_id"],
            created_at=row["created_at"],
        )

    # ── Pipeline jobs ──────────────────────────────────────────────

    def save_pipeline_job(self, job: PipelineJob) -> None:
        self._query(
            f"""
            MERGE {self._table('pipeline_jobs')} T
            USING (SELECT @job_id AS job_id) S
            ON T.job_id = S.job_id
            WHEN MATCHED THEN UPDATE SET
                status = @status, job_json = @job_json, updated_at = @updated_at
            WHEN NOT MATCHED THEN INSERT (job_id, campaign_id, status, job_json, updated_at)
            VALUES (@job_id, @campaign_id, @status, @job_json, @updated_at)
            """,
            [
                _param("job_id", "STRING", job.id),
                _param("campaign_id", "STRING", job.campaign_id),
                _param("status", "STRING", job.status.value),
                _param("job_json", "STRING", json.dumps(job.to_dict())),
                _param("updated_at", "TIMESTAMP", datetime.now(timezone.utc)),
            ],
        )

    def get_pipeline_job(self, job_id: str) -> Optional[PipelineJob]:
        rows = self._query(
            f"SELECT job_json FROM {self._table('pipeline_jobs')} WHERE job_id = @id LIMIT 1",
            [_param("id", "STRING", job_id)],
        )
        if not rows:
            return None
        return PipelineJob.from_dict(json.loads(rows[0]["job_json"]))

    # ── Audit log ──────────────────────────────────────────────────

    def log_scrape(self, entry: ScrapeAuditEntry) -> None:
        table_ref = f"{self.dataset_ref}.scrape_audit_log"
        row = {
            "url": entry.url,
            "success": entry.success,
            "processing_time_ms": entry.processing_time_ms,
            "error": entry.error,
            "created_at": entry.timestamp.isoformat(),
        }
        errors = self.client.insert_rows_json(table_ref, [row])
        if errors:
            logger.error("BigQuery insert errors (scrape_audit_log): %s", errors)


def _lead_from_row(row: Any) -> Lead:
    return Lead(
        id=row["lead_id"],
        campaign_id=row["campaign_id"],
        url=row["url"],
        domain=row["domain"],
        company_name=row["company_name"] or row["domain"],
        industry=row["industry"] or "Unknown",
        status=LeadStatus(row["status"]),
        score=row["score"],
        created_at=row["created_at"],
        last_scored_at=row["last_scored_at"],
    )
