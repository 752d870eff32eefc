"""Pydantic request/response schemas."""

from secureship.schemas.findings import (
    AnalysisResult,
    Finding,
    OverallRisk,
    SeverityLevel,
)
from secureship.schemas.github import (
    PullRequestContext,
    PullRequestEvent,
    PullRequestFile,
    RepoConfig,
)
from secureship.schemas.health import HealthResponse
from secureship.schemas.scans import (
    NotableFinding,
    NotableFindingsResponse,
    ReposResponse,
    ScanListResponse,
    ScanReport,
    ScanRequest,
    ScanResponse,
    ScanStats,
    SeverityCounts,
)

__all__ = [
    "AnalysisResult",
    "Finding",
    "HealthResponse",
    "NotableFinding",
    "NotableFindingsResponse",
    "OverallRisk",
    "PullRequestContext",
    "PullRequestEvent",
    "PullRequestFile",
    "RepoConfig",
    "ReposResponse",
    "ScanListResponse",
    "ScanReport",
    "ScanRequest",
    "ScanResponse",
    "ScanStats",
    "SeverityCounts",
    "SeverityLevel",
]
