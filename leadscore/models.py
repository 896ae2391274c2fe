"""Shared data models for the lead enrichment and scoring pipeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

DEFAULT_QUALIFICATION_THRESHOLD = 70


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LeadStatus(str, Enum):
    RAW = "RAW"
    SCORED = "SCORED"
    QUALIFIED = "QUALIFIED"


class CriterionType(str, Enum):
    KEYWORD = "KEYWORD"
    DOMAIN = "DOMAIN"
    CONTENT = "CONTENT"


# ── Scraping ───────────────────────────────────────────────────────


@dataclass
class PageMetadata:
    """Document-level metadata pulled from the page head."""

    title: str = ""
    description: str = ""
    keywords: list[str] = field(default_factory=list)
    language: str = "en"
    last_modified: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "keywords": list(self.keywords),
            "language": self.language,
            "last_modified": self.last_modified,
        }


@dataclass
class ContactInfo:
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "phone": self.phone, "address": self.address}


@dataclass
class StructuredData:
    """Heuristic company fields extracted from a page."""

    company_name: Optional[str] = None
    industry: Optional[str] = None
    services: list[str] = field(default_factory=list)
    technologies: list[str] = field(default_factory=list)
    certifications: list[str] = field(default_factory=list)
    contact_info: ContactInfo = field(default_factory=ContactInfo)

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_name": self.company_name,
            "industry": self.industry,
            "services": list(self.services),
            "technologies": list(self.technologies),
            "certifications": list(self.certifications),
            "contact_info": self.contact_info.to_dict(),
        }


@dataclass(frozen=True)
class ScrapingResult:
    """Outcome of scraping one URL. Failures carry success=False and an error."""

    url: str
    success: bool
    content: str = ""
    metadata: PageMetadata = field(default_factory=PageMetadata)
    structured_data: StructuredData = field(default_factory=StructuredData)
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)
    processing_time_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "success": self.success,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
            "structured_data": self.structured_data.to_dict(),
            "error": self.error,
            "timestamp": _iso(self.timestamp),
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass
class ScrapingJob:
    """Ephemeral record of one batch scrape."""

    id: str
    urls: list[str]
    industry: str = "general"
    status: JobStatus = JobStatus.PENDING
    results: list[ScrapingResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.successful

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "urls": list(self.urls),
            "industry": self.industry,
            "status": self.status.value,
            "results": [r.to_dict() for r in self.results],
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
            "error": self.error,
        }


@dataclass
class ScrapeAuditEntry:
    """One append-only audit record for a scraping attempt."""

    url: str
    success: bool
    processing_time_ms: int
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


# ── Scoring ────────────────────────────────────────────────────────


@dataclass
class ScoringCriterion:
    """One weighted rule within a scoring model."""

    id: str
    name: str
    type: CriterionType
    search_terms: list[str] = field(default_factory=list)
    weight: float = 0.0


@dataclass
class ScoringModel:
    """A set of weighted criteria. Weights need not sum to 100."""

    id: str
    name: str
    industry: str = "general"
    criteria: list[ScoringCriterion] = field(default_factory=list)
    is_active: bool = True
    qualification_threshold: int = DEFAULT_QUALIFICATION_THRESHOLD

    def is_qualified(self, total_score: float) -> bool:
        return total_score >= self.qualification_threshold


@dataclass
class CriterionScore:
    criterion_id: str
    score: int
    matched_content: list[str] = field(default_factory=list)
    confidence: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "criterion_id": self.criterion_id,
            "score": self.score,
            "matched_content": list(self.matched_content),
            "confidence": self.confidence,
        }


@dataclass
class ScoringResult:
    total_score: int
    confidence: int
    criteria_scores: list[CriterionScore] = field(default_factory=list)
    scoring_model_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_score": self.total_score,
            "confidence": self.confidence,
            "criteria_scores": [c.to_dict() for c in self.criteria_scores],
            "scoring_model_id": self.scoring_model_id,
            "created_at": _iso(self.created_at),
        }


@dataclass
class CampaignScoringSummary:
    total_leads: int = 0
    scored_leads: int = 0
    qualified_leads: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_leads": self.total_leads,
            "scored_leads": self.scored_leads,
            "qualified_leads": self.qualified_leads,
        }


# ── Leads & campaigns ──────────────────────────────────────────────


@dataclass
class Campaign:
    id: str
    name: str
    scoring_model_id: Optional[str] = None
    industry: Optional[str] = None


@dataclass
class Lead:
    """A prospective company tracked through enrichment and scoring."""

    id: str
    campaign_id: str
    url: str
    domain: str
    company_name: str
    industry: str = "Unknown"
    status: LeadStatus = LeadStatus.RAW
    score: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    last_scored_at: Optional[datetime] = None


@dataclass
class LeadEnrichment:
    """Scraped web presence persisted against a lead."""

    lead_id: str
    industry: str = "Unknown"
    company_name: Optional[str] = None
    scraped_content: str = ""
    page_title: str = ""
    page_description: str = ""
    page_keywords: list[str] = field(default_factory=list)
    page_language: str = "en"
    last_modified: Optional[str] = None
    services: list[str] = field(default_factory=list)
    technologies: list[str] = field(default_factory=list)
    certifications: list[str] = field(default_factory=list)
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_address: Optional[str] = None
    processing_time_ms: int = 0
    source: str = "WEB_SCRAPING"
    created_at: datetime = field(default_factory=utcnow)


# ── Pipeline ───────────────────────────────────────────────────────


@dataclass
class PipelineProgress:
    total: int = 0
    processed: int = 0
    scraped: int = 0
    scored: int = 0
    qualified: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "processed": self.processed,
            "scraped": self.scraped,
            "scored": self.scored,
            "qualified": self.qualified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineProgress":
        return cls(**{k: int(data.get(k, 0)) for k in ("total", "processed", "scraped", "scored", "qualified")})


@dataclass
class PipelineUrlResult:
    url: str
    status: str  # success | failed
    lead_id: Optional[str] = None
    error: Optional[str] = None
    score: Optional[int] = None
    qualified: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url, "status": self.status}
        if self.lead_id is not None:
            data["lead_id"] = self.lead_id
        if self.error is not None:
            data["error"] = self.error
        if self.score is not None:
            data["score"] = self.score
        if self.qualified is not None:
            data["qualified"] = self.qualified
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineUrlResult":
        return cls(
            url=data["url"],
            status=data["status"],
            lead_id=data.get("lead_id"),
            error=data.get("error"),
            score=data.get("score"),
            qualified=data.get("qualified"),
        )


@dataclass
class PipelineJob:
    """State and results of one pipeline invocation."""

    id: str
    campaign_id: str
    urls: list[str]
    status: JobStatus = JobStatus.PENDING
    progress: PipelineProgress = field(default_factory=PipelineProgress)
    results: list[PipelineUrlResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "urls": list(self.urls),
            "status": self.status.value,
            "progress": self.progress.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "created_at": _iso(self.created_at),
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineJob":
        """Rebuild a job from ``to_dict`` output."""
        return cls(
            id=data["id"],
            campaign_id=data["campaign_id"],
            urls=list(data.get("urls", [])),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            progress=PipelineProgress.from_dict(data.get("progress") or {}),
            results=[PipelineUrlResult.from_dict(r) for r in data.get("results", [])],
            created_at=_parse_iso(data.get("created_at")) or utcnow(),
            started_at=_parse_iso(data.get("started_at")),
            completed_at=_parse_iso(data.get("completed_at")),
            error=data.get("error"),
        )


@dataclass
class NotificationEvent:
    """A typed, fire-and-forget event for the notification channel."""

    type: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "timestamp": _iso(self.timestamp),
        }
