"""Per-repository scan config (.secureship.yml): severity threshold and ignored paths."""

import logging
import re
from functools import lru_cache
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from secureship.schemas.github import PullRequestContext, RepoConfig
from secureship.services.github import GitHubApiError, GitHubClient

if TYPE_CHECKING:
    from secureship.core.config import Settings

logger = logging.getLogger(__name__)


class RepoConfigError(Exception):
    """Raised when .secureship.yml is not valid YAML or does not match the config schema."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def parse_repo_config(text: str) -> RepoConfig:
    """Parse YAML text into RepoConfig. An empty document means defaults."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RepoConfigError("Repository config is not valid YAML.", cause=e) from e
    if data is None:
        return RepoConfig()
    if not isinstance(data, dict):
        raise RepoConfigError("Repository config must be a mapping.")
    try:
        return RepoConfig.model_validate(data)
    except ValidationError as e:
        raise RepoConfigError("Repository config does not match the expected schema.", cause=e) from e


async def load_repo_config(
    github: GitHubClient,
    context: PullRequestContext,
    settings: "Settings",
) -> RepoConfig:
    """
    Fetch and parse the repo config at the PR head.

    A missing file means defaults; fetch or parse errors are logged and also
    fall back to defaults so the scan still runs.
    """
    try:
        text = await github.get_file_content(
            context.owner, context.repo, settings.REPO_CONFIG_PATH, context.head_sha
        )
    except GitHubApiError as e:
        logger.warning("Could not fetch repository config: %s", e.message)
        return RepoConfig()
    if text is None:
        return RepoConfig()
    try:
        return parse_repo_config(text)
    except RepoConfigError as e:
        logger.warning(
            "Ignoring invalid repository config: %s",
            e.message,
            extra={"repo": f"{context.owner}/{context.repo}"},
        )
        return RepoConfig()


@lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Compile a path glob: "**/" matches zero or more directories, "**" anything,
    "*" and "?" stay within one path segment.
    """
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def should_ignore_file(filename: str, ignore_paths: list[str]) -> bool:
    return any(_glob_to_regex(p).match(filename) for p in ignore_paths)
