"""Tests for configuration and campaign catalogue loading."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from leadscore.config import ScrapingSettings, load_campaigns, load_config
from leadscore.models import CriterionType

REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

CAMPAIGNS_YAML = """
campaigns:
  - id: roofing
    name: Roofing contractors
    industry: construction
    scoring_model:
      id: roofing-v1
      name: Roofing fit
      criteria:
        - name: Roofing services
          type: keyword
          search_terms: [roof, shingle]
          weight: 70
        - id: roof-domain
          type: domain
          search_terms: [roof]
          weight: 30
  - name: entry without an id
  - id: bare
"""


class TestLoadConfig(unittest.TestCase):
    """Test YAML loading with environment overrides."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "config.yaml")
        with open(self.path, "w") as f:
            f.write("run_mode: local\ngcp:\n  project_id: from-file\n")

    def tearDown(self):
        self.tmp.cleanup()

    def test_reads_file(self):
        with patch.dict(os.environ, {}, clear=True):
            config = load_config(self.path)
        self.assertEqual(config["run_mode"], "local")
        self.assertEqual(config["gcp"]["project_id"], "from-file")

    def test_environment_overrides(self):
        env = {
            "RUN_MODE": "cloud",
            "GCP_PROJECT_ID": "from-env",
            "BIGQUERY_DATASET": "leads",
            "NOTIFY_WEBHOOK_URL": "https://hooks.example/abc",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config(self.path)
        self.assertEqual(config["run_mode"], "cloud")
        self.assertEqual(config["gcp"]["project_id"], "from-env")
        self.assertEqual(config["gcp"]["bigquery_dataset"], "leads")
        self.assertEqual(config["notifications"]["webhook_url"], "https://hooks.example/abc")

    def test_config_path_env(self):
        with patch.dict(os.environ, {"CONFIG_PATH": self.path}, clear=True):
            self.assertEqual(load_config()["gcp"]["project_id"], "from-file")

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config(os.path.join(self.tmp.name, "absent.yaml"))


class TestScrapingSettings(unittest.TestCase):
    """Test the typed view of the scraping section."""

    def test_defaults(self):
        settings = ScrapingSettings.from_config({})
        self.assertEqual(settings.timeout_seconds, 10.0)
        self.assertEqual(settings.max_attempts, 3)
        self.assertEqual(settings.batch_size, 5)
        self.assertEqual(settings.batch_delay_seconds, 2.0)
        self.assertEqual(settings.max_batch_urls, 100)
        self.assertEqual(settings.rate_limit_requests, 60)
        self.assertTrue(settings.headless)

    def test_overrides(self):
        settings = ScrapingSettings.from_config(
            {"scraping": {"batch_size": "10", "headless": False, "timeout_seconds": 30}}
        )
        self.assertEqual(settings.batch_size, 10)
        self.assertFalse(settings.headless)
        self.assertEqual(settings.timeout_seconds, 30.0)


class TestLoadCampaigns(unittest.TestCase):
    """Test campaign catalogue parsing."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "campaigns.yaml")
        with open(self.path, "w") as f:
            f.write(CAMPAIGNS_YAML)

    def tearDown(self):
        self.tmp.cleanup()

    def test_parses_campaigns_and_models(self):
        config = {"campaigns_path": self.path, "scoring": {"qualification_threshold": 75}}
        campaigns, models = load_campaigns(config)

        self.assertEqual([c.id for c in campaigns], ["roofing", "bare"])
        self.assertEqual(campaigns[0].scoring_model_id, "roofing-v1")
        self.assertEqual(campaigns[0].industry, "construction")
        self.assertIsNone(campaigns[1].scoring_model_id)
        self.assertEqual(campaigns[1].name, "bare")

        self.assertEqual(len(models), 1)
        model = models[0]
        self.assertEqual(model.qualification_threshold, 75)
        self.assertEqual([c.id for c in model.criteria], ["roofing-v1-c1", "roof-domain"])
        self.assertEqual(model.criteria[0].type, CriterionType.KEYWORD)
        self.assertEqual(model.criteria[1].type, CriterionType.DOMAIN)
        self.assertEqual(model.criteria[0].weight, 70.0)
        self.assertEqual(model.criteria[0].search_terms, ["roof", "shingle"])

    def test_shipped_catalogue(self):
        campaigns, models = load_campaigns(
            {"campaigns_path": str(REPO_CONFIG_DIR / "campaigns.yaml")}
        )
        by_id = {c.id: c for c in campaigns}
        self.assertEqual(by_id["dental-q3"].scoring_model_id, "dental-v1")
        self.assertIsNone(by_id["unconfigured"].scoring_model_id)
        self.assertEqual({m.id for m in models}, {"dental-v1", "warehouse-v1"})
        for model in models:
            self.assertEqual(model.qualification_threshold, 70)


if __name__ == "__main__":
    unittest.main()
