"""Tests for term matching and weighted lead scoring."""

import unittest

from leadscore.errors import NotFoundError, PipelineConfigError, ScoringError
from leadscore.models import (
    Campaign,
    CriterionType,
    Lead,
    LeadEnrichment,
    LeadStatus,
    ScoringCriterion,
    ScoringModel,
    ScoringResult,
)
from leadscore.scoring.engine import ScoringEngine, build_scoring_text, criterion_confidence
from leadscore.scoring.matching import TermMatcher, round_half_up
from leadscore.storage.memory import InMemoryRepository


def make_lead(lead_id="lead-1", domain="example.com", campaign_id="camp-1",
              status=LeadStatus.RAW):
    return Lead(
        id=lead_id,
        campaign_id=campaign_id,
        url=f"https://{domain}",
        domain=domain,
        company_name=domain,
        status=status,
    )


def criterion(cid, terms, weight, type_=CriterionType.KEYWORD):
    return ScoringCriterion(id=cid, name=cid, type=type_, search_terms=terms, weight=weight)


class TestTermMatcher(unittest.TestCase):
    """Test case-insensitive substring matching of search terms."""

    def test_partial_match_scores_share_of_terms(self):
        match = TermMatcher(["dental", "oral"]).match("We place Dental implants")
        self.assertEqual(match.matched, ["dental"])
        self.assertEqual(match.score, 50)

    def test_blank_terms_ignored(self):
        matcher = TermMatcher(["Dental", "  ", "oral"])
        self.assertEqual(matcher.terms, ["Dental", "oral"])
        match = matcher.match("dental clinic")
        self.assertEqual(match.total_terms, 2)
        self.assertEqual(match.matched, ["Dental"])

    def test_repeated_terms_count_in_score(self):
        match = TermMatcher(["dental", "dental", "oral"]).match("dental clinic")
        self.assertEqual(match.matched, ["dental", "dental"])
        self.assertEqual(match.total_terms, 3)
        self.assertEqual(match.score, 67)
        self.assertEqual(match.unique_terms, 2)
        self.assertEqual(match.unique_ratio, 1.0)

    def test_no_terms_scores_zero(self):
        self.assertEqual(TermMatcher([]).match("anything").score, 0)

    def test_empty_text_scores_zero(self):
        self.assertEqual(TermMatcher(["dental"]).match("").score, 0)

    def test_thirds_round(self):
        match = TermMatcher(["a", "b", "c"]).match("a b")
        self.assertEqual(match.score, 67)


class TestRounding(unittest.TestCase):
    """Test half-up rounding used for every reported score."""

    def test_half_rounds_up(self):
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(69.5), 70)
        self.assertEqual(round_half_up(69.49), 69)

    def test_negative(self):
        self.assertEqual(round_half_up(-0.5), -1)
        self.assertEqual(round_half_up(-1.2), -1)


class TestConfidence(unittest.TestCase):
    """Test the richness / match / enrichment confidence blend."""

    def test_components(self):
        self.assertEqual(criterion_confidence(500, 0.5, False), 35)
        self.assertEqual(criterion_confidence(5000, 1.0, True), 100)
        self.assertEqual(criterion_confidence(0, 0.0, False), 0)
        self.assertEqual(criterion_confidence(0, 0.0, True), 30)

    def test_richness_grows_past_one_thousand_chars(self):
        self.assertEqual(criterion_confidence(2000, 0.0, False), 60)
        self.assertEqual(criterion_confidence(1000, 0.0, True), 60)
        self.assertEqual(criterion_confidence(5000, 0.0, True), 100)

    def test_never_exceeds_bounds(self):
        self.assertLessEqual(criterion_confidence(10 ** 6, 1.0, True), 100)
        self.assertGreaterEqual(criterion_confidence(0, 0.0, False), 0)


class TestScoringText(unittest.TestCase):
    """Test the text a lead is scored against."""

    def test_includes_enrichment_fields_lowercased(self):
        lead = make_lead(domain="Acme.example")
        enrichment = LeadEnrichment(
            lead_id=lead.id,
            page_title="ACME Home",
            scraped_content="Conveyor Systems",
            services=["racking"],
            page_keywords=["Logistics"],
        )
        text = build_scoring_text(lead, enrichment)
        for fragment in ("acme home", "conveyor systems", "racking", "logistics", "acme.example"):
            self.assertIn(fragment, text)
        self.assertEqual(text, text.lower())

    def test_lead_only(self):
        text = build_scoring_text(make_lead())
        self.assertEqual(text, "example.com example.com unknown https://example.com")


class TestScoringEngine(unittest.TestCase):
    """Test scoring leads against models held in the repository."""

    def setUp(self):
        self.repo = InMemoryRepository()
        self.engine = ScoringEngine(self.repo)
        self.lead = self.repo.create_lead(make_lead())
        self.repo.create_enrichment(LeadEnrichment(
            lead_id=self.lead.id,
            scraped_content="We place dental implants every day.",
        ))

    def add_model(self, criteria, threshold=70, model_id="model-1"):
        model = ScoringModel(
            id=model_id, name=model_id, criteria=criteria, qualification_threshold=threshold,
        )
        self.repo.add_scoring_model(model)
        return model

    def test_keyword_criterion_half_matched(self):
        self.add_model([criterion("c1", ["dental", "oral"], 100)])
        result = self.engine.score_lead(self.lead.id, "model-1")
        self.assertEqual(result.criteria_scores[0].score, 50)
        self.assertEqual(result.criteria_scores[0].matched_content, ["dental"])
        self.assertEqual(result.total_score, 50)
        self.assertEqual(result.scoring_model_id, "model-1")

    def test_weighted_total_qualifies(self):
        self.add_model([
            criterion("c1", ["dental", "oral"], 60),
            criterion("c2", ["implants"], 40, CriterionType.CONTENT),
        ])
        result = self.engine.score_lead(self.lead.id, "model-1")
        self.assertEqual(result.total_score, 70)

        lead = self.engine.save_scoring_result(self.lead.id, result, 70)
        self.assertEqual(lead.status, LeadStatus.QUALIFIED)
        self.assertEqual(lead.score, 70)
        self.assertIsNotNone(lead.last_scored_at)
        self.assertIs(self.repo.get_scoring_result(self.lead.id), result)

    def test_below_threshold_is_scored(self):
        model = self.add_model([criterion("c1", ["dental", "oral"], 100)], threshold=80)
        result = self.engine.score_lead(self.lead.id, model.id)
        lead = self.engine.save_scoring_result(self.lead.id, result, model.qualification_threshold)
        self.assertEqual(lead.status, LeadStatus.SCORED)
        self.assertEqual(lead.score, 50)

    def test_weights_not_normalised(self):
        self.add_model([
            criterion("c1", ["dental"], 80),
            criterion("c2", ["implants"], 80),
        ])
        self.assertEqual(self.engine.score_lead(self.lead.id, "model-1").total_score, 160)

    def test_domain_criterion_uses_domain_only(self):
        lead = self.repo.create_lead(make_lead("lead-2", domain="brightsmile-dental.com"))
        self.repo.create_enrichment(LeadEnrichment(
            lead_id=lead.id, scraped_content="A friendly clinic in town",
        ))
        self.add_model([criterion("d", ["dental", "clinic"], 100, CriterionType.DOMAIN)])
        result = self.engine.score_lead(lead.id, "model-1")
        self.assertEqual(result.criteria_scores[0].score, 50)
        self.assertEqual(result.criteria_scores[0].matched_content, ["dental"])

    def test_confidence_with_enrichment(self):
        # 51 chars of lead fields + separator + 948 chars of content
        self.repo.create_enrichment(LeadEnrichment(
            lead_id=self.lead.id, scraped_content="dental " + "x" * 941,
        ))
        self.add_model([
            criterion("full", ["dental"], 50),
            criterion("half", ["dental", "oral"], 50),
        ])
        result = self.engine.score_lead(self.lead.id, "model-1")
        self.assertEqual([cs.confidence for cs in result.criteria_scores], [100, 80])
        self.assertEqual(result.confidence, 90)

    def test_long_content_reaches_full_confidence_without_matches(self):
        self.repo.create_enrichment(LeadEnrichment(
            lead_id=self.lead.id, scraped_content="x" * 5000,
        ))
        self.add_model([criterion("c1", ["oral"], 100)])
        result = self.engine.score_lead(self.lead.id, "model-1")
        self.assertEqual(result.total_score, 0)
        self.assertEqual(result.criteria_scores[0].confidence, 100)

    def test_repeated_terms_weigh_in_score(self):
        self.add_model([criterion("c1", ["dental", "dental", "oral"], 100)])
        result = self.engine.score_lead(self.lead.id, "model-1")
        self.assertEqual(result.total_score, 67)
        self.assertEqual(result.criteria_scores[0].matched_content, ["dental", "dental"])
        self.assertEqual(result.confidence, 73)

    def test_confidence_without_enrichment_is_low(self):
        lead = self.repo.create_lead(make_lead("lead-3", domain="plain.example"))
        self.add_model([criterion("c1", ["dental"], 100)])
        result = self.engine.score_lead(lead.id, "model-1")
        self.assertEqual(result.total_score, 0)
        self.assertLess(result.confidence, 30)

    def test_missing_lead(self):
        self.add_model([criterion("c1", ["dental"], 100)])
        with self.assertRaises(NotFoundError):
            self.engine.score_lead("nope", "model-1")

    def test_missing_model(self):
        with self.assertRaises(NotFoundError):
            self.engine.score_lead(self.lead.id, "nope")

    def test_model_without_criteria(self):
        self.add_model([])
        with self.assertRaises(ScoringError):
            self.engine.score_lead(self.lead.id, "model-1")

    def test_save_replaces_previous_result(self):
        first = ScoringResult(total_score=10, confidence=50)
        second = ScoringResult(total_score=90, confidence=60)
        self.engine.save_scoring_result(self.lead.id, first)
        lead = self.engine.save_scoring_result(self.lead.id, second)
        self.assertIs(self.repo.get_scoring_result(self.lead.id), second)
        self.assertEqual(lead.status, LeadStatus.QUALIFIED)


class FlakyRepository(InMemoryRepository):
    def get_enrichment(self, lead_id):
        if lead_id == "broken":
            raise RuntimeError("storage unavailable")
        return super().get_enrichment(lead_id)


class TestCampaignScoring(unittest.TestCase):
    """Test bulk scoring of a campaign's leads."""

    def setUp(self):
        self.repo = FlakyRepository(
            campaigns=[
                Campaign(id="camp-1", name="Dental", scoring_model_id="model-1"),
                Campaign(id="no-model", name="Unassigned"),
                Campaign(id="dangling", name="Dangling", scoring_model_id="missing"),
            ],
            scoring_models=[
                ScoringModel(id="model-1", name="Dental",
                             criteria=[criterion("c1", ["dental"], 100)]),
            ],
        )
        self.engine = ScoringEngine(self.repo)

    def test_scores_raw_and_scored_leads(self):
        raw = self.repo.create_lead(make_lead("raw", domain="smile.example"))
        self.repo.create_enrichment(LeadEnrichment(lead_id="raw", scraped_content="dental care"))
        scored = self.repo.create_lead(make_lead("scored", domain="other.example",
                                                 status=LeadStatus.SCORED))
        qualified = self.repo.create_lead(make_lead("qualified", domain="done.example",
                                                    status=LeadStatus.QUALIFIED))
        self.repo.create_lead(make_lead("broken", domain="broken.example"))
        self.repo.create_lead(make_lead("elsewhere", domain="x.example", campaign_id="camp-2"))

        summary = self.engine.score_campaign_leads("camp-1")

        self.assertEqual(summary.total_leads, 3)
        self.assertEqual(summary.scored_leads, 2)
        self.assertEqual(summary.qualified_leads, 1)
        self.assertEqual(raw.status, LeadStatus.QUALIFIED)
        self.assertEqual(scored.status, LeadStatus.SCORED)
        self.assertEqual(scored.score, 0)
        self.assertIsNone(qualified.score)
        self.assertEqual(self.repo.get_lead("broken").status, LeadStatus.RAW)
        self.assertEqual(self.repo.get_lead("elsewhere").status, LeadStatus.RAW)

    def test_empty_campaign(self):
        summary = self.engine.score_campaign_leads("camp-1")
        self.assertEqual(summary.to_dict(),
                         {"total_leads": 0, "scored_leads": 0, "qualified_leads": 0})

    def test_campaign_not_found(self):
        with self.assertRaises(NotFoundError):
            self.engine.score_campaign_leads("nope")

    def test_campaign_without_model(self):
        with self.assertRaises(PipelineConfigError):
            self.engine.load_campaign_model("no-model")

    def test_campaign_with_dangling_model(self):
        with self.assertRaises(PipelineConfigError):
            self.engine.load_campaign_model("dangling")


if __name__ == "__main__":
    unittest.main()
