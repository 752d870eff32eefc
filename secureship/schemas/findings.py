"""Pydantic schemas for security findings and per-scan analysis results."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Reusable severity levels for validation and type safety across schemas.
SeverityLevel = Literal["critical", "high", "medium", "low"]
OverallRisk = Literal["critical", "high", "medium", "low", "none"]

# Display and ranking order, most severe first.
SEVERITY_ORDER: tuple[SeverityLevel, ...] = ("critical", "high", "medium", "low")

# Rank used for max/threshold comparisons (higher = more severe).
SEVERITY_RANK: dict[str, int] = {"none": 0, "low": 1, "medium": 2, "high": 3, "critical": 4}


class CamelModel(BaseModel):
    """Base for wire models: snake_case attributes, camelCase JSON, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Finding(CamelModel):
    """One suspected security issue reported by the model for a changed file."""

    type: str = Field(
        ...,
        description="Free-text vulnerability category (e.g. SQL Injection).",
    )
    severity: SeverityLevel = Field(
        ...,
        description="Severity level: critical, high, medium, or low.",
    )
    file: str = Field(
        default="",
        description="Path of the changed file; set by the normalizer, not trusted from the model.",
    )
    line: int = Field(
        ...,
        description="Line number in the new version of the file.",
    )
    description: str = Field(
        default="",
        description="Why this is a security issue.",
    )
    suggestion: str = Field(
        default="",
        description="Suggested fix.",
    )
    confidence: float = Field(
        ...,
        ge=0,
        le=1,
        description="Model confidence in range 0.0–1.0.",
    )
    cwe_id: str | None = Field(
        default=None,
        description="CWE identifier when applicable (e.g. CWE-89).",
    )
    owasp_category: str | None = Field(
        default=None,
        description="OWASP Top 10 category when applicable.",
    )


class AnalysisResult(CamelModel):
    """Aggregated outcome of analyzing every file of one pull request."""

    findings: list[Finding] = Field(default_factory=list)
    summary: str
    overall_risk: OverallRisk
