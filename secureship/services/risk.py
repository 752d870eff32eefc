"""Risk aggregation: reduce a scan's findings to one overall risk and a one-line summary.

Both results depend only on the multiset of severities; finding order never
changes the outcome.
"""

from collections import Counter
from collections.abc import Iterable

from secureship.schemas.findings import (
    SEVERITY_ORDER,
    SEVERITY_RANK,
    AnalysisResult,
    Finding,
    OverallRisk,
    SeverityLevel,
)

NO_ISSUES_SUMMARY = "No security issues found in this PR."


def count_by_severity(findings: Iterable[Finding]) -> dict[SeverityLevel, int]:
    """Return a count for every severity level (zero when absent)."""
    counts = Counter(f.severity for f in findings)
    return {s: counts.get(s, 0) for s in SEVERITY_ORDER}


def determine_overall_risk(findings: Iterable[Finding]) -> OverallRisk:
    """Highest severity present (critical > high > medium > low), or none when empty."""
    worst: OverallRisk = "none"
    for f in findings:
        if SEVERITY_RANK[f.severity] > SEVERITY_RANK[worst]:
            worst = f.severity
    return worst


def generate_summary(findings: list[Finding]) -> str:
    """Format the total and per-severity breakdown, omitting empty tiers."""
    if not findings:
        return NO_ISSUES_SUMMARY
    counts = count_by_severity(findings)
    parts = [f"{counts[s]} {s}" for s in SEVERITY_ORDER if counts[s] > 0]
    return f"Found {len(findings)} security issue(s): {', '.join(parts)}"


def meets_threshold(finding: Finding, threshold: SeverityLevel) -> bool:
    """True if the finding is at least as severe as threshold."""
    return SEVERITY_RANK[finding.severity] >= SEVERITY_RANK[threshold]


def aggregate_findings(findings: list[Finding]) -> AnalysisResult:
    return AnalysisResult(
        findings=list(findings),
        summary=generate_summary(findings),
        overall_risk=determine_overall_risk(findings),
    )
