"""
Scan one pull request from the command line and store the report. Run from project root:
  python -m secureship.scan_pr OWNER/REPO PR_NUMBER [--notify]
Example:
  python -m secureship.scan_pr octo-org/api 42
"""

import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError

from secureship.core.config import get_settings
from secureship.schemas.scans import ScanRequest
from secureship.services.github import GitHubApiError, GitHubNotConfiguredError
from secureship.services.scanner import scan_on_demand
from secureship.services.storage import build_scan_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run a SecureShip scan for one pull request.")
    parser.add_argument("repo", help='Repository as "owner/name"')
    parser.add_argument("pr", type=int, help="Pull request number")
    parser.add_argument(
        "--notify",
        action="store_true",
        help="Post review comments, summary, and commit status to GitHub",
    )
    args = parser.parse_args(argv)

    try:
        request = ScanRequest(repo=args.repo, pr=args.pr)
    except ValidationError as e:
        print(f"Invalid arguments: {e.errors()[0]['msg']}", file=sys.stderr)
        return 2

    settings = get_settings()
    store = build_scan_store(settings)
    store.load()
    owner, name = request.owner_and_name
    try:
        report = asyncio.run(
            scan_on_demand(owner, name, request.pr, store, settings, notify=args.notify)
        )
    except (GitHubNotConfiguredError, GitHubApiError) as e:
        logger.error("Scan failed: %s", e.message)
        return 1
    print(json.dumps(report.model_dump(mode="json", by_alias=True), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
