"""Weighted multi-criterion lead scoring.

Each criterion scores 0-100 by term matching. Its weighted contribution is
``score / 100 * weight`` and the total is the rounded sum of contributions.
Weights are not normalised, so a model whose weights do not sum to 100
can produce totals outside 0-100.

Per-criterion confidence blends content richness, match ratio and
enrichment availability:

    richness   = len(text) / 1000 * 30
    matching   = matched / distinct_terms * 40
    enrichment = 30 if the lead has enrichment data else 0

The richness term is not capped on its own; only the sum is clamped to
0-100, so text past about 3,300 characters reaches full confidence even
with no matches. The result's confidence is the mean over criteria.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from leadscore.errors import NotFoundError, PipelineConfigError, ScoringError
from leadscore.models import (
    DEFAULT_QUALIFICATION_THRESHOLD,
    Campaign,
    CampaignScoringSummary,
    CriterionScore,
    CriterionType,
    Lead,
    LeadEnrichment,
    LeadStatus,
    ScoringCriterion,
    ScoringModel,
    ScoringResult,
)
from leadscore.scoring.matching import TermMatcher, round_half_up
from leadscore.storage.base import LeadRepository

logger = logging.getLogger(__name__)

RICHNESS_WEIGHT = 30
MATCH_WEIGHT = 40
ENRICHMENT_WEIGHT = 30
RICHNESS_SCALE_CHARS = 1000

SCORABLE_STATUSES = (LeadStatus.RAW, LeadStatus.SCORED)


def build_scoring_text(lead: Lead, enrichment: Optional[LeadEnrichment] = None) -> str:
    """Lowercased concatenation of every text field known about a lead."""
    parts = [lead.company_name, lead.domain, lead.industry, lead.url]
    if enrichment is not None:
        parts.extend([
            enrichment.company_name,
            enrichment.page_title,
            enrichment.page_description,
            enrichment.scraped_content,
            " ".join(enrichment.page_keywords),
            " ".join(enrichment.services),
            " ".join(enrichment.certifications),
            enrichment.contact_email,
            enrichment.contact_phone,
            enrichment.contact_address,
        ])
    return " ".join(p for p in parts if p).lower()


def criterion_confidence(text_length: int, match_ratio: float, has_enrichment: bool) -> int:
    richness = text_length / RICHNESS_SCALE_CHARS * RICHNESS_WEIGHT
    matching = match_ratio * MATCH_WEIGHT
    enrichment = ENRICHMENT_WEIGHT if has_enrichment else 0
    return round_half_up(min(100.0, max(0.0, richness + matching + enrichment)))


def score_criterion(
    criterion: ScoringCriterion,
    lead: Lead,
    text: str,
    has_enrichment: bool,
) -> CriterionScore:
    """Score one criterion. DOMAIN criteria look at the lead's domain only."""
    matcher = TermMatcher(criterion.search_terms)
    target = lead.domain if criterion.type == CriterionType.DOMAIN else text
    match = matcher.match(target or "")
    return CriterionScore(
        criterion_id=criterion.id,
        score=match.score,
        matched_content=match.matched,
        confidence=criterion_confidence(len(text), match.unique_ratio, has_enrichment),
    )


def aggregate(
    model: ScoringModel, criteria_scores: list[CriterionScore]
) -> ScoringResult:
    """Sum weighted contributions and average confidences."""
    weights = {c.id: c.weight for c in model.criteria}
    total = sum(cs.score / 100 * weights.get(cs.criterion_id, 0) for cs in criteria_scores)
    confidence = sum(cs.confidence for cs in criteria_scores) / len(criteria_scores)
    return ScoringResult(
        total_score=round_half_up(total),
        confidence=round_half_up(confidence),
        criteria_scores=criteria_scores,
        scoring_model_id=model.id,
    )


class ScoringEngine:
    """Scores leads against scoring models held by the repository."""

    def __init__(self, repository: LeadRepository):
        self.repository = repository

    def score_lead(self, lead_id: str, scoring_model_id: str) -> ScoringResult:
        """Evaluate a lead against every criterion of a scoring model.

        Args:
            lead_id: Lead to score.
            scoring_model_id: Model whose criteria are applied.

        Returns:
            ScoringResult with the per-criterion breakdown.

        Raises:
            NotFoundError: If the lead or the model does not exist.
            ScoringError: If the model has no criteria.
        """
        lead = self.repository.get_lead(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead not found: {lead_id}")

        model = self.repository.get_scoring_model(scoring_model_id)
        if model is None:
            raise NotFoundError(f"Scoring model not found: {scoring_model_id}")
        if not model.criteria:
            raise ScoringError(f"Scoring model {model.id} has no criteria")

        enrichment = self.repository.get_enrichment(lead_id)
        text = build_scoring_text(lead, enrichment)

        criteria_scores = [
            score_criterion(criterion, lead, text, enrichment is not None)
            for criterion in model.criteria
        ]
        result = aggregate(model, criteria_scores)

        logger.info(
            "Scored lead %s with model %s: total=%d confidence=%d",
            lead_id, model.id, result.total_score, result.confidence,
        )
        return result

    def save_scoring_result(
        self,
        lead_id: str,
        result: ScoringResult,
        qualification_threshold: int = DEFAULT_QUALIFICATION_THRESHOLD,
    ) -> Lead:
        """Replace the lead's scoring result and update its score and status."""
        self.repository.upsert_scoring_result(lead_id, result)
        qualified = result.total_score >= qualification_threshold
        lead = self.repository.update_lead(
            lead_id,
            score=result.total_score,
            status=LeadStatus.QUALIFIED if qualified else LeadStatus.SCORED,
            last_scored_at=datetime.now(timezone.utc),
        )
        logger.debug("Saved score %d for lead %s (status=%s)", result.total_score, lead_id, lead.status.value)
        return lead

    def load_campaign_model(self, campaign_id: str) -> tuple[Campaign, ScoringModel]:
        """Campaign and its assigned scoring model.

        Raises:
            NotFoundError: If the campaign does not exist.
            PipelineConfigError: If it has no usable scoring model.
        """
        campaign = self.repository.get_campaign(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign not found: {campaign_id}")
        if not campaign.scoring_model_id:
            raise PipelineConfigError(
                f"Campaign {campaign_id} must have a scoring model assigned"
            )
        model = self.repository.get_scoring_model(campaign.scoring_model_id)
        if model is None:
            raise PipelineConfigError(
                f"Scoring model {campaign.scoring_model_id} for campaign {campaign_id} not found"
            )
        return campaign, model

    def score_campaign_leads(self, campaign_id: str) -> CampaignScoringSummary:
        """Score every RAW or SCORED lead of a campaign.

        Individual failures are logged and skipped.
        """
        _, model = self.load_campaign_model(campaign_id)
        leads = self.repository.list_leads(campaign_id, SCORABLE_STATUSES)
        summary = CampaignScoringSummary(total_leads=len(leads))

        for lead in leads:
            try:
                result = self.score_lead(lead.id, model.id)
                self.save_scoring_result(lead.id, result, model.qualification_threshold)
            except Exception as e:
                logger.error("Failed to score lead %s: %s", lead.id, e, exc_info=True)
                continue
            summary.scored_leads += 1
            if model.is_qualified(result.total_score):
                summary.qualified_leads += 1

        logger.info(
            "Campaign %s scoring complete: %d/%d scored, %d qualified",
            campaign_id, summary.scored_leads, summary.total_leads, summary.qualified_leads,
        )
        return summary
