"""Configuration loading for the lead pipeline."""

import logging
import os
from dataclasses import dataclass
from typing import Any

import yaml

from leadscore.models import (
    DEFAULT_QUALIFICATION_THRESHOLD,
    Campaign,
    CriterionType,
    ScoringCriterion,
    ScoringModel,
)

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = "config/config.yaml"


@dataclass
class ScrapingSettings:
    """Typed view of the ``scraping`` config section."""

    timeout_seconds: float = 10.0
    max_attempts: int = 3
    retry_delay_seconds: float = 1.0
    batch_size: int = 5
    batch_delay_seconds: float = 2.0
    max_batch_urls: int = 100
    rate_limit_requests: int = 60
    rate_limit_window_seconds: float = 60.0
    headless: bool = True

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScrapingSettings":
        section = config.get("scraping") or {}
        defaults = cls()
        return cls(
            timeout_seconds=float(section.get("timeout_seconds", defaults.timeout_seconds)),
            max_attempts=int(section.get("max_attempts", defaults.max_attempts)),
            retry_delay_seconds=float(
                section.get("retry_delay_seconds", defaults.retry_delay_seconds)
            ),
            batch_size=int(section.get("batch_size", defaults.batch_size)),
            batch_delay_seconds=float(
                section.get("batch_delay_seconds", defaults.batch_delay_seconds)
            ),
            max_batch_urls=int(section.get("max_batch_urls", defaults.max_batch_urls)),
            rate_limit_requests=int(
                section.get("rate_limit_requests", defaults.rate_limit_requests)
            ),
            rate_limit_window_seconds=float(
                section.get("rate_limit_window_seconds", defaults.rate_limit_window_seconds)
            ),
            headless=bool(section.get("headless", defaults.headless)),
        )


def load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config YAML. Falls back to CONFIG_PATH env var,
                     then to config/config.yaml.

    Returns:
        Merged configuration dictionary.
    """
    path = config_path or os.environ.get("CONFIG_PATH", _DEFAULT_CONFIG_PATH)
    logger.info("Loading config from %s", path)

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    # Environment variable overrides (for Cloud Run deployment)
    if os.environ.get("GCP_PROJECT_ID"):
        config.setdefault("gcp", {})["project_id"] = os.environ["GCP_PROJECT_ID"]
    if os.environ.get("GCP_REGION"):
        config.setdefault("gcp", {})["region"] = os.environ["GCP_REGION"]
    if os.environ.get("BIGQUERY_DATASET"):
        config.setdefault("gcp", {})["bigquery_dataset"] = os.environ["BIGQUERY_DATASET"]
    if os.environ.get("RUN_MODE"):
        config["run_mode"] = os.environ["RUN_MODE"]
    if os.environ.get("NOTIFY_WEBHOOK_URL"):
        config.setdefault("notifications", {})["webhook_url"] = os.environ["NOTIFY_WEBHOOK_URL"]

    return config


def load_campaigns(config: dict[str, Any]) -> tuple[list[Campaign], list[ScoringModel]]:
    """Load campaigns and their scoring models from the campaign catalogue.

    Each campaign entry may embed a ``scoring_model`` block. Entries without
    an id are skipped with a warning.

    Args:
        config: Application configuration dict.

    Returns:
        Tuple of (campaigns, scoring models).
    """
    path = config.get("campaigns_path", "config/campaigns.yaml")
    logger.info("Loading campaigns from %s", path)

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    default_threshold = (config.get("scoring") or {}).get(
        "qualification_threshold", DEFAULT_QUALIFICATION_THRESHOLD
    )

    campaigns: list[Campaign] = []
    models: list[ScoringModel] = []
    for entry in data.get("campaigns", []):
        if not entry.get("id"):
            logger.warning("Skipping campaign entry with no id: %s", entry)
            continue

        model_id = None
        model_entry = entry.get("scoring_model")
        if model_entry:
            model = parse_scoring_model(model_entry, default_threshold)
            models.append(model)
            model_id = model.id

        campaigns.append(
            Campaign(
                id=str(entry["id"]),
                name=entry.get("name", str(entry["id"])),
                scoring_model_id=model_id,
                industry=entry.get("industry"),
            )
        )

    logger.info("Loaded %d campaigns, %d scoring models", len(campaigns), len(models))
    return campaigns, models


def parse_scoring_model(
    entry: dict[str, Any],
    default_threshold: int = DEFAULT_QUALIFICATION_THRESHOLD,
) -> ScoringModel:
    criteria = []
    for i, raw in enumerate(entry.get("criteria", []), 1):
        criteria.append(
            ScoringCriterion(
                id=str(raw.get("id", f"{entry['id']}-c{i}")),
                name=raw.get("name", f"criterion {i}"),
                type=CriterionType(str(raw.get("type", "KEYWORD")).upper()),
                search_terms=[str(t) for t in raw.get("search_terms", [])],
                weight=float(raw.get("weight", 0)),
            )
        )
    return ScoringModel(
        id=str(entry["id"]),
        name=entry.get("name", str(entry["id"])),
        industry=entry.get("industry", "general"),
        criteria=criteria,
        is_active=bool(entry.get("is_active", True)),
        qualification_threshold=int(
            entry.get("qualification_threshold", default_threshold)
        ),
    )
