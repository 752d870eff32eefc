"""GitHub REST client: list PR files, read repo files, post reviews, comments, and commit statuses."""

from __future__ import annotations

import base64
import binascii
import json
import time
from types import TracebackType
from typing import TYPE_CHECKING, Any

import httpx
import jwt

from secureship.schemas.github import PullRequestFile

if TYPE_CHECKING:
    from secureship.core.config import Settings

GITHUB_ACCEPT = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"
FILES_PER_PAGE = 100
# GitHub lists at most 3000 files per pull request.
MAX_FILE_PAGES = 30
# App JWTs may live at most 10 minutes; iat is backdated for clock drift.
APP_JWT_TTL_SEC = 540
APP_JWT_BACKDATE_SEC = 60


class GitHubNotConfiguredError(Exception):
    """Raised when a GitHub call is needed but neither app credentials nor a token are set."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class GitHubApiError(Exception):
    """Raised when the GitHub API is unreachable or returns an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
        detail = body.get("message") or json.dumps(body.get("errors", body))[:500]
    except (json.JSONDecodeError, AttributeError):
        detail = resp.text[:500] if resp.text else "Unknown error"
    return detail


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.status_code == 401:
        raise GitHubApiError("GitHub authentication failed (invalid token or app credentials).", 401)
    if resp.status_code >= 400:
        raise GitHubApiError(
            f"GitHub returned {resp.status_code}: {_error_detail(resp)}",
            resp.status_code,
        )


def _auth_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": GITHUB_ACCEPT,
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }


class GitHubClient:
    """Async GitHub API client authenticated with one bearer token (PAT or installation token)."""

    def __init__(
        self,
        token: str,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.GITHUB_API_URL,
            headers=_auth_headers(token),
            timeout=httpx.Timeout(settings.GITHUB_REQUEST_TIMEOUT_SEC),
            transport=transport,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubApiError(f"GitHub request failed: {e!s}") from e
        _raise_for_status(resp)
        return resp

    async def list_pull_request_files(
        self, owner: str, repo: str, pull_number: int
    ) -> list[PullRequestFile]:
        """All changed files of a pull request, following pagination."""
        files: list[PullRequestFile] = []
        for page in range(1, MAX_FILE_PAGES + 1):
            resp = await self._request(
                "GET",
                f"/repos/{owner}/{repo}/pulls/{pull_number}/files",
                params={"per_page": FILES_PER_PAGE, "page": page},
            )
            items = resp.json()
            files.extend(PullRequestFile.model_validate(item) for item in items)
            if len(items) < FILES_PER_PAGE:
                break
        return files

    async def get_pull_request(self, owner: str, repo: str, pull_number: int) -> dict[str, Any]:
        resp = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pull_number}")
        return resp.json()

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str | None:
        """Decoded text of a file at ref, or None if it does not exist or is not a file."""
        try:
            resp = await self._request(
                "GET", f"/repos/{owner}/{repo}/contents/{path}", params={"ref": ref}
            )
        except GitHubApiError as e:
            if e.status_code == 404:
                return None
            raise
        data = resp.json()
        if not isinstance(data, dict) or "content" not in data:
            return None
        try:
            return base64.b64decode(data["content"]).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise GitHubApiError(f"Could not decode {path}: {e!s}") from e

    async def create_review(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        commit_id: str,
        comments: list[dict[str, Any]],
    ) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{pull_number}/reviews",
            json={"commit_id": commit_id, "event": "COMMENT", "comments": comments},
        )

    async def create_issue_comment(self, owner: str, repo: str, issue_number: int, body: str) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )

    async def create_commit_status(
        self,
        owner: str,
        repo: str,
        sha: str,
        state: str,
        description: str,
        context: str,
    ) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/statuses/{sha}",
            json={"state": state, "description": description, "context": context},
        )


def _has_app_credentials(settings: Settings) -> bool:
    return settings.GITHUB_APP_ID is not None and settings.GITHUB_PRIVATE_KEY is not None


def is_github_configured(settings: Settings) -> bool:
    if _has_app_credentials(settings):
        return True
    return settings.GITHUB_TOKEN is not None and bool(settings.GITHUB_TOKEN.get_secret_value().strip())


def create_app_jwt(app_id: int, private_key: str, now: int | None = None) -> str:
    """Sign the short-lived RS256 JWT that authenticates as the GitHub App itself."""
    issued = int(time.time()) if now is None else now
    payload = {
        "iat": issued - APP_JWT_BACKDATE_SEC,
        "exp": issued + APP_JWT_TTL_SEC,
        "iss": str(app_id),
    }
    return jwt.encode(payload, private_key, algorithm="RS256")


async def _app_request(
    settings: Settings,
    method: str,
    path: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    if not _has_app_credentials(settings):
        raise GitHubNotConfiguredError("GITHUB_APP_ID and GITHUB_PRIVATE_KEY must both be set.")
    app_jwt = create_app_jwt(settings.GITHUB_APP_ID, settings.GITHUB_PRIVATE_KEY.get_secret_value())
    async with httpx.AsyncClient(
        base_url=settings.GITHUB_API_URL,
        headers=_auth_headers(app_jwt),
        timeout=httpx.Timeout(settings.GITHUB_REQUEST_TIMEOUT_SEC),
        transport=transport,
    ) as client:
        try:
            resp = await client.request(method, path)
        except httpx.HTTPError as e:
            raise GitHubApiError(f"GitHub request failed: {e!s}") from e
    _raise_for_status(resp)
    return resp.json()


async def client_for_installation(
    settings: Settings,
    installation_id: int | None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GitHubClient:
    """
    Client for a webhook delivery: installation token when the app is configured,
    else the static GITHUB_TOKEN.
    """
    if installation_id is not None and _has_app_credentials(settings):
        data = await _app_request(
            settings, "POST", f"/app/installations/{installation_id}/access_tokens", transport
        )
        return GitHubClient(data["token"], settings, transport=transport)
    return _token_client(settings, transport)


async def client_for_repo(
    settings: Settings,
    owner: str,
    repo: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GitHubClient:
    """Client for an on-demand scan: look up the app installation for the repo, or use GITHUB_TOKEN."""
    if _has_app_credentials(settings):
        installation = await _app_request(
            settings, "GET", f"/repos/{owner}/{repo}/installation", transport
        )
        return await client_for_installation(settings, installation["id"], transport)
    return _token_client(settings, transport)


def _token_client(
    settings: Settings, transport: httpx.AsyncBaseTransport | None
) -> GitHubClient:
    token = settings.GITHUB_TOKEN.get_secret_value().strip() if settings.GITHUB_TOKEN else ""
    if not token:
        raise GitHubNotConfiguredError(
            "GitHub is not configured; set GITHUB_APP_ID and GITHUB_PRIVATE_KEY, or GITHUB_TOKEN."
        )
    return GitHubClient(token, settings, transport=transport)
