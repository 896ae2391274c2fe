"""Exception hierarchy for the lead pipeline.

Each class carries a stable ``code`` used when a failure is reported to
a caller, alongside the human-readable message.
"""

from typing import Any


class LeadScoreError(Exception):
    """Base exception for pipeline failures."""

    code = "leadscore_error"


class ValidationError(LeadScoreError):
    """Raised when required input is missing or malformed."""

    code = "validation_error"


class NotFoundError(LeadScoreError):
    """Raised when a lead, scoring model or campaign does not exist."""

    code = "not_found"


class ScrapingError(LeadScoreError):
    """Raised when a page could not be retrieved."""

    code = "scraping_error"


class PageNotAccessibleError(ScrapingError):
    """HTTP 403/404. Not retried."""

    code = "page_not_accessible"

    def __init__(self, url: str, status: int):
        super().__init__(f"Page not accessible (HTTP {status}): {url}")
        self.url = url
        self.status = status


class TransientFetchError(ScrapingError):
    """Timeout, connection failure or server error. Retried."""

    code = "transient_fetch_error"


class ScoringError(LeadScoreError):
    code = "scoring_error"


class PipelineConfigError(LeadScoreError):
    """Raised when a campaign cannot be processed as configured."""

    code = "pipeline_config_error"


def describe_error(exc: BaseException) -> dict[str, Any]:
    """Return a stable classification and message for any exception."""
    code = exc.code if isinstance(exc, LeadScoreError) else "internal_error"
    return {"code": code, "message": str(exc) or exc.__class__.__name__}
