"""Post scan results back to the pull request: inline review, summary comment, commit status."""

import asyncio
import logging

from secureship.schemas.findings import AnalysisResult, Finding
from secureship.schemas.github import PullRequestContext
from secureship.services.github import GitHubApiError, GitHubClient

logger = logging.getLogger(__name__)

STATUS_CONTEXT = "SecureShip Security Review"
STATUS_DESCRIPTION_MAX = 140
# Overall risks that fail the commit status.
FAILING_RISKS = frozenset({"critical", "high"})

SEVERITY_BADGES = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🟢",
}


def format_finding_comment(finding: Finding) -> str:
    """Markdown body for one finding: type, severity, description, fix, CWE/OWASP references."""
    lines = [
        f"{SEVERITY_BADGES[finding.severity]} **{finding.type}** ({finding.severity.upper()})",
        "",
        finding.description,
        "",
        "**Suggested Fix:**",
        "```",
        finding.suggestion,
        "```",
    ]
    refs: list[str] = []
    if finding.cwe_id:
        cwe_number = finding.cwe_id.upper().removeprefix("CWE-")
        refs.append(f"📚 [{finding.cwe_id}](https://cwe.mitre.org/data/definitions/{cwe_number}.html)")
    if finding.owasp_category:
        refs.append(f"OWASP: {finding.owasp_category}")
    if refs:
        lines.extend(["", " | ".join(refs)])
    return "\n".join(lines)


def format_summary_comment(result: AnalysisResult) -> str:
    """Markdown summary comment with a findings table."""
    lines = ["## 🛡️ SecureShip Security Review", "", result.summary]
    if result.findings:
        lines.extend(
            [
                "",
                "### Findings",
                "",
                "| Severity | Type | File | Line |",
                "|----------|------|------|------|",
            ]
        )
        for f in result.findings:
            lines.append(
                f"| {SEVERITY_BADGES[f.severity]} {f.severity} | {f.type} | `{f.file}` | {f.line} |"
            )
        lines.extend(["", "---", "*Review the inline comments for fix suggestions.*"])
    lines.extend(["", "<sub>Powered by SecureShip</sub>"])
    return "\n".join(lines)


def commit_state(result: AnalysisResult) -> str:
    return "failure" if result.overall_risk in FAILING_RISKS else "success"


async def post_review_comments(
    github: GitHubClient, context: PullRequestContext, findings: list[Finding]
) -> None:
    """
    One review with an inline comment per finding. If GitHub rejects the review
    (e.g. a line outside the diff), fall back to one issue comment per finding.
    """
    if not findings:
        return
    comments = [
        {"path": f.file, "line": f.line, "body": format_finding_comment(f)} for f in findings
    ]
    try:
        await github.create_review(
            context.owner, context.repo, context.pull_number, context.head_sha, comments
        )
    except GitHubApiError as e:
        logger.warning("Review rejected, posting issue comments instead: %s", e.message)
        for f in findings:
            body = f"**Security Issue Found in `{f.file}:{f.line}`**\n\n{format_finding_comment(f)}"
            await github.create_issue_comment(context.owner, context.repo, context.pull_number, body)


async def post_summary_comment(
    github: GitHubClient, context: PullRequestContext, result: AnalysisResult
) -> None:
    await github.create_issue_comment(
        context.owner, context.repo, context.pull_number, format_summary_comment(result)
    )


async def update_commit_status(
    github: GitHubClient, context: PullRequestContext, result: AnalysisResult
) -> None:
    await github.create_commit_status(
        context.owner,
        context.repo,
        context.head_sha,
        state=commit_state(result),
        description=result.summary[:STATUS_DESCRIPTION_MAX],
        context=STATUS_CONTEXT,
    )


async def publish_results(
    github: GitHubClient, context: PullRequestContext, result: AnalysisResult
) -> list[str]:
    """
    Run the three side effects concurrently. Failures are logged and returned
    by name; they never propagate to the caller.
    """
    tasks = {
        "review_comments": post_review_comments(github, context, result.findings),
        "summary_comment": post_summary_comment(github, context, result),
        "commit_status": update_commit_status(github, context, result),
    }
    outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)
    failed: list[str] = []
    for name, outcome in zip(tasks, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            failed.append(name)
            logger.error(
                "Publishing %s failed for %s/%s#%s",
                name,
                context.owner,
                context.repo,
                context.pull_number,
                exc_info=outcome,
            )
    logger.info(
        "Published scan results",
        extra={
            "pull_number": context.pull_number,
            "publish_status": "success" if not failed else "partial",
            "error_count": len(failed),
        },
    )
    return failed
