"""CLI entry point for the lead enrichment and scoring pipeline.

Usage:
    python -m leadscore.main [--config path/to/config.yaml] [-v] COMMAND ...

Commands:
    scrape URL [--industry X]
    batch URL [URL ...] [--industry X]
    pipeline --campaign ID URL [URL ...] [--industry X]
    score-campaign --campaign ID
    check URL
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from leadscore.config import load_config
from leadscore.errors import LeadScoreError, describe_error
from leadscore.models import JobStatus
from leadscore.orchestrator import (
    run_batch,
    run_check,
    run_pipeline,
    run_score_campaign,
    run_scrape,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Lead pipeline: scrape company sites, enrich and score leads",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to configuration YAML (default: config/config.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape a single URL")
    scrape.add_argument("url")
    scrape.add_argument("--industry")

    batch = sub.add_parser("batch", help="Scrape several URLs in batches")
    batch.add_argument("urls", nargs="+")
    batch.add_argument("--industry")

    pipeline = sub.add_parser("pipeline", help="Create, enrich and score leads for a campaign")
    pipeline.add_argument("urls", nargs="+")
    pipeline.add_argument("--campaign", required=True)
    pipeline.add_argument("--industry")

    score = sub.add_parser("score-campaign", help="Re-score a campaign's leads (cloud run mode)")
    score.add_argument("--campaign", required=True)

    check = sub.add_parser("check", help="Check whether a URL is reachable")
    check.add_argument("url")

    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def dispatch(args: argparse.Namespace, config: dict[str, Any]) -> int:
    """Run the selected command, print its JSON result and return an exit code."""
    if args.command == "scrape":
        result = asyncio.run(run_scrape(config, args.url, args.industry))
        _emit(result.to_dict())
        return 0 if result.success else 1

    if args.command == "batch":
        job = asyncio.run(run_batch(config, args.urls, args.industry))
        _emit(job.to_dict())
        return 0 if job.status == JobStatus.COMPLETED else 1

    if args.command == "pipeline":
        job = asyncio.run(run_pipeline(config, args.urls, args.campaign, args.industry))
        _emit(job.to_dict())
        return 0 if job.status == JobStatus.COMPLETED else 1

    if args.command == "score-campaign":
        summary = asyncio.run(run_score_campaign(config, args.campaign))
        _emit(summary.to_dict())
        return 0

    if args.command == "check":
        accessible = asyncio.run(run_check(config, args.url))
        _emit({"url": args.url, "is_accessible": accessible})
        return 0 if accessible else 1

    raise ValueError(f"Unknown command: {args.command}")


def main() -> None:
    """Parse arguments and run the requested command."""
    args = build_parser().parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    # Suppress noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Lead pipeline starting: %s", args.command)

    try:
        config = load_config(args.config)
        sys.exit(dispatch(args, config))
    except FileNotFoundError as e:
        logger.error("Configuration file not found: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except LeadScoreError as e:
        _emit({"error": describe_error(e)})
        logger.error("%s failed: %s", args.command, e)
        sys.exit(1)
    except Exception as e:
        logger.error("%s failed: %s", args.command, e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
