"""Scan orchestration: fetch PR files, analyze, aggregate, persist, and notify GitHub."""

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING

from secureship.schemas.github import PullRequestContext, PullRequestEvent, PullRequestFile, RepoConfig
from secureship.schemas.scans import ScanReport
from secureship.services.analyzer import FileAnalyzer, analyze_file, analyze_files
from secureship.services.github import (
    GitHubApiError,
    GitHubClient,
    GitHubNotConfiguredError,
    client_for_installation,
    client_for_repo,
)
from secureship.services.prompts import is_code_file
from secureship.services.publish import publish_results
from secureship.services.repo_config import load_repo_config, should_ignore_file
from secureship.services.risk import aggregate_findings, meets_threshold
from secureship.services.storage import ScanStore

if TYPE_CHECKING:
    from secureship.core.config import Settings

logger = logging.getLogger(__name__)


def _new_scan_id() -> str:
    return uuid.uuid4().hex


def _now_ms() -> int:
    return int(time.time() * 1000)


def select_files(files: list[PullRequestFile], repo_config: RepoConfig) -> list[PullRequestFile]:
    """Code files that are not excluded by the repo's ignore_paths, in PR order."""
    return [
        f
        for f in files
        if is_code_file(f.filename) and not should_ignore_file(f.filename, repo_config.ignore_paths)
    ]


async def run_scan(
    context: PullRequestContext,
    github: GitHubClient,
    store: ScanStore,
    settings: "Settings",
    notify: bool = True,
    analyze: FileAnalyzer = analyze_file,
) -> ScanReport:
    """
    Scan one pull request end to end and return the saved report.

    Raises GitHubApiError only if the changed files cannot be listed; per-file
    analysis and publishing failures are absorbed.
    """
    repo_key = f"{context.owner}/{context.repo}"
    logger.info("Analyzing PR #%s in %s", context.pull_number, repo_key)

    files = await github.list_pull_request_files(context.owner, context.repo, context.pull_number)
    repo_config = await load_repo_config(github, context, settings)
    selected = select_files(files, repo_config)
    logger.info(
        "Found %s changed files, analyzing %s",
        len(files),
        len(selected),
        extra={"repo": repo_key, "pull_number": context.pull_number},
    )

    findings = await analyze_files(selected, settings, analyze=analyze)
    findings = [f for f in findings if meets_threshold(f, repo_config.severity_threshold)]
    result = aggregate_findings(findings)

    report = ScanReport(
        id=_new_scan_id(),
        owner=context.owner,
        repo=context.repo,
        pull_number=context.pull_number,
        head_sha=context.head_sha,
        scanned_at=_now_ms(),
        files_scanned=len(selected),
        findings=result.findings,
        summary=result.summary,
        overall_risk=result.overall_risk,
    )
    await asyncio.to_thread(store.save_scan, report)
    logger.info(
        "Analysis complete: %s findings",
        len(result.findings),
        extra={"scan_id": report.id, "overall_risk": result.overall_risk},
    )

    if notify:
        await publish_results(github, context, result)
    return report


async def scan_pull_request_event(
    event: PullRequestEvent,
    store: ScanStore,
    settings: "Settings",
) -> ScanReport | None:
    """Background job for a webhook delivery. GitHub failures are logged; returns None then."""
    context = event.to_context()
    installation_id = event.installation.id if event.installation else None
    try:
        github = await client_for_installation(settings, installation_id)
    except (GitHubNotConfiguredError, GitHubApiError) as e:
        logger.error("Cannot scan %s/%s#%s: %s", context.owner, context.repo, context.pull_number, e.message)
        return None
    async with github:
        try:
            return await run_scan(context, github, store, settings, notify=True)
        except GitHubApiError as e:
            logger.error(
                "Scan of %s/%s#%s failed: %s",
                context.owner,
                context.repo,
                context.pull_number,
                e.message,
                extra={"status_code": e.status_code},
            )
            return None
        except Exception as e:
            logger.exception("Background scan job failed: %s", e)
            return None


async def scan_on_demand(
    owner: str,
    repo: str,
    pull_number: int,
    store: ScanStore,
    settings: "Settings",
    notify: bool | None = None,
) -> ScanReport:
    """
    Synchronous scan requested through the API or CLI.

    Raises GitHubNotConfiguredError or GitHubApiError when the pull request
    cannot be resolved; the caller maps them to a response.
    """
    github = await client_for_repo(settings, owner, repo)
    async with github:
        pr = await github.get_pull_request(owner, repo, pull_number)
        head_sha = (pr.get("head") or {}).get("sha") or ""
        context = PullRequestContext(
            owner=owner, repo=repo, pull_number=pull_number, head_sha=head_sha
        )
        return await run_scan(
            context,
            github,
            store,
            settings,
            notify=settings.NOTIFY_ON_DEMAND_SCANS if notify is None else notify,
        )
