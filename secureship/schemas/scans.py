"""Pydantic schemas for persisted scan reports and the dashboard query API."""

import re

from pydantic import BaseModel, Field, field_validator

from secureship.schemas.findings import CamelModel, Finding, OverallRisk

# owner/name as accepted by GitHub (letters, digits, "-", "_", ".").
_REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class ScanReport(CamelModel):
    """Persisted record of one completed pull-request scan. Immutable once saved."""

    id: str = Field(..., min_length=1, description="Unique scan identifier.")
    owner: str = Field(..., min_length=1, description="Repository owner login.")
    repo: str = Field(..., min_length=1, description="Repository name.")
    pull_number: int = Field(..., ge=1, description="Pull request number.")
    head_sha: str = Field(..., description="Commit SHA of the PR head that was scanned.")
    scanned_at: int = Field(..., ge=0, description="Scan completion time, epoch milliseconds.")
    files_scanned: int = Field(..., ge=0, description="Number of files sent to analysis.")
    findings: list[Finding] = Field(default_factory=list)
    summary: str
    overall_risk: OverallRisk

    @property
    def repo_key(self) -> str:
        """The "owner/repo" key used by the repository index."""
        return f"{self.owner}/{self.repo}"


class SeverityCounts(CamelModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class ScanStats(CamelModel):
    """Dashboard totals across every stored scan."""

    total_scans: int
    total_findings: int
    by_severity: SeverityCounts
    last_scan_at: int | None = Field(
        default=None,
        description="Most recent scannedAt, or null when no scan has run.",
    )


class ScanListResponse(CamelModel):
    scans: list[ScanReport]
    total: int
    page: int
    limit: int
    total_pages: int


class NotableFinding(CamelModel):
    """A critical or high finding with the identity of the scan that produced it."""

    scan_id: str
    owner: str
    repo: str
    pull_number: int
    scanned_at: int
    finding: Finding


class NotableFindingsResponse(CamelModel):
    total: int
    findings: list[NotableFinding]


class ReposResponse(BaseModel):
    repos: list[str]


class ScanRequest(BaseModel):
    """Request body for POST /scan."""

    repo: str = Field(..., description='Repository as "owner/name".')
    pr: int = Field(..., ge=1, description="Pull request number.")

    @field_validator("repo")
    @classmethod
    def validate_repo(cls, v: str) -> str:
        v = v.strip()
        if not _REPO_PATTERN.match(v):
            raise ValueError('repo must be in the form "owner/name"')
        return v

    @property
    def owner_and_name(self) -> tuple[str, str]:
        owner, name = self.repo.split("/", 1)
        return owner, name


class ScanResponse(BaseModel):
    scan: ScanReport
