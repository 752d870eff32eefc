"""Pydantic schemas for GitHub data: changed files, PR context, webhook payloads, repo config."""

from pydantic import BaseModel, Field, field_validator

from secureship.schemas.findings import SEVERITY_RANK, SeverityLevel

DEFAULT_IGNORE_PATHS: tuple[str, ...] = (
    "node_modules/**",
    "vendor/**",
    "dist/**",
    "**/*.test.*",
    "**/*.spec.*",
)


class PullRequestFile(BaseModel):
    """One changed file of a pull request as listed by the GitHub API."""

    model_config = {"extra": "ignore"}

    filename: str
    status: str = ""
    patch: str | None = Field(
        default=None,
        description="Unified diff hunk; absent for binary or very large files.",
    )
    additions: int = 0
    deletions: int = 0


class PullRequestContext(BaseModel):
    """Identity of the pull request being scanned."""

    owner: str
    repo: str
    pull_number: int
    head_sha: str


class RepoConfig(BaseModel):
    """Per-repository settings read from .secureship.yml at the PR head."""

    model_config = {"extra": "ignore"}

    severity_threshold: SeverityLevel = "low"
    ignore_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_PATHS))

    @field_validator("severity_threshold", mode="before")
    @classmethod
    def normalize_threshold(cls, v: object) -> object:
        if isinstance(v, str) and v.strip().lower() in SEVERITY_RANK:
            return v.strip().lower()
        return v

    @field_validator("ignore_paths", mode="before")
    @classmethod
    def drop_blank_paths(cls, v: object) -> object:
        if isinstance(v, list):
            return [str(p).strip() for p in v if p is not None and str(p).strip()]
        return v


# Minimal views of the pull_request webhook payload (unknown fields ignored).


class _Owner(BaseModel):
    login: str


class _Repository(BaseModel):
    name: str
    owner: _Owner


class _Head(BaseModel):
    sha: str


class _PullRequest(BaseModel):
    number: int
    head: _Head


class _Installation(BaseModel):
    id: int


class PullRequestEvent(BaseModel):
    """The subset of a GitHub pull_request event needed to start a scan."""

    action: str
    pull_request: _PullRequest
    repository: _Repository
    installation: _Installation | None = None

    def to_context(self) -> PullRequestContext:
        return PullRequestContext(
            owner=self.repository.owner.login,
            repo=self.repository.name,
            pull_number=self.pull_request.number,
            head_sha=self.pull_request.head.sha,
        )
