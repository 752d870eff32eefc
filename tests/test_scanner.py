"""Unit tests for secureship.services.scanner: file selection, end-to-end scan, webhook and on-demand entry points."""

import asyncio
import threading
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from secureship.core.config import get_settings
from secureship.schemas.findings import Finding
from secureship.schemas.github import PullRequestContext, PullRequestEvent, PullRequestFile, RepoConfig
from secureship.services.github import GitHubApiError, GitHubNotConfiguredError
from secureship.services.scanner import run_scan, scan_on_demand, scan_pull_request_event, select_files
from secureship.services.storage import ScanStore

CONTEXT = PullRequestContext(owner="acme", repo="api", pull_number=8, head_sha="head1")


def _file(filename: str, patch_text: str | None = "+code") -> PullRequestFile:
    return PullRequestFile(filename=filename, status="modified", patch=patch_text)


def _finding(filename: str, severity: str) -> Finding:
    return Finding(
        type="Hardcoded Secret",
        severity=severity,
        file=filename,
        line=2,
        description="Key in source.",
        suggestion="Load it from the environment.",
        confidence=0.8,
    )


PR_FILES = [
    _file("src/a.py"),
    _file("README.md"),
    _file("node_modules/pkg/index.js"),
    _file("src/b.ts"),
    _file("src/b.test.ts"),
]

FINDINGS_BY_FILE = {
    "src/a.py": ["high", "low"],
    "src/b.ts": ["critical"],
}


async def _fake_analyze(file: PullRequestFile, settings: object) -> list[Finding]:
    return [_finding(file.filename, s) for s in FINDINGS_BY_FILE.get(file.filename, [])]


def _github(config_text: str | None = None) -> MagicMock:
    github = MagicMock()
    github.list_pull_request_files = AsyncMock(return_value=list(PR_FILES))
    github.get_file_content = AsyncMock(return_value=config_text)
    github.get_pull_request = AsyncMock(return_value={"number": 8, "head": {"sha": "head1"}})
    github.create_review = AsyncMock()
    github.create_issue_comment = AsyncMock()
    github.create_commit_status = AsyncMock()
    return github


class TestSelectFiles(unittest.TestCase):
    def test_code_files_not_ignored(self) -> None:
        selected = select_files(PR_FILES, RepoConfig())
        self.assertEqual([f.filename for f in selected], ["src/a.py", "src/b.ts"])

    def test_custom_ignore_paths(self) -> None:
        selected = select_files(PR_FILES, RepoConfig(ignore_paths=["src/b.*"]))
        self.assertEqual([f.filename for f in selected], ["src/a.py", "node_modules/pkg/index.js"])


class TestRunScan(unittest.TestCase):
    def setUp(self) -> None:
        self.store = ScanStore()
        self.settings = get_settings()

    def test_report_saved(self) -> None:
        github = _github()
        report = asyncio.run(
            run_scan(CONTEXT, github, self.store, self.settings, notify=False, analyze=_fake_analyze)
        )
        self.assertEqual(report.files_scanned, 2)
        self.assertEqual([f.severity for f in report.findings], ["high", "low", "critical"])
        self.assertEqual(report.overall_risk, "critical")
        self.assertEqual(report.summary, "Found 3 security issue(s): 1 critical, 1 high, 1 low")
        self.assertEqual((report.owner, report.repo, report.pull_number), ("acme", "api", 8))
        self.assertEqual(report.head_sha, "head1")
        self.assertEqual(self.store.get_scan_by_id(report.id), report)
        github.create_review.assert_not_awaited()
        github.create_commit_status.assert_not_awaited()

    def test_save_runs_off_the_event_loop_thread(self) -> None:
        saved_on: list[int] = []
        store = self.store
        original_save = store.save_scan

        def save_scan(report: object) -> None:
            saved_on.append(threading.get_ident())
            original_save(report)

        with patch.object(store, "save_scan", side_effect=save_scan):
            report = asyncio.run(
                run_scan(CONTEXT, _github(), store, self.settings, notify=False, analyze=_fake_analyze)
            )
        self.assertEqual(len(saved_on), 1)
        self.assertNotEqual(saved_on[0], threading.get_ident())
        self.assertIsNotNone(store.get_scan_by_id(report.id))

    def test_severity_threshold_applied(self) -> None:
        github = _github("severity_threshold: high\n")
        report = asyncio.run(
            run_scan(CONTEXT, github, self.store, self.settings, notify=False, analyze=_fake_analyze)
        )
        self.assertEqual(sorted(f.severity for f in report.findings), ["critical", "high"])

    def test_notify_publishes(self) -> None:
        github = _github()
        asyncio.run(run_scan(CONTEXT, github, self.store, self.settings, notify=True, analyze=_fake_analyze))
        github.create_review.assert_awaited_once()
        github.create_issue_comment.assert_awaited_once()
        self.assertEqual(github.create_commit_status.await_args.kwargs["state"], "failure")

    def test_listing_failure_propagates(self) -> None:
        github = _github()
        github.list_pull_request_files.side_effect = GitHubApiError("GitHub returned 404: Not Found", 404)
        with self.assertRaises(GitHubApiError):
            asyncio.run(run_scan(CONTEXT, github, self.store, self.settings, analyze=_fake_analyze))
        self.assertEqual(len(self.store), 0)

    def test_no_code_files(self) -> None:
        github = _github()
        github.list_pull_request_files.return_value = [_file("docs/guide.md")]
        report = asyncio.run(
            run_scan(CONTEXT, github, self.store, self.settings, notify=False, analyze=_fake_analyze)
        )
        self.assertEqual(report.files_scanned, 0)
        self.assertEqual(report.overall_risk, "none")
        self.assertEqual(report.summary, "No security issues found in this PR.")


def _event(action: str = "opened", installation: bool = True) -> PullRequestEvent:
    payload: dict[str, object] = {
        "action": action,
        "pull_request": {"number": 8, "head": {"sha": "head1"}},
        "repository": {"name": "api", "owner": {"login": "acme"}},
    }
    if installation:
        payload["installation"] = {"id": 55}
    return PullRequestEvent.model_validate(payload)


class TestScanPullRequestEvent(unittest.TestCase):
    @patch("secureship.services.analyzer.complete", new_callable=AsyncMock)
    @patch("secureship.services.scanner.client_for_installation", new_callable=AsyncMock)
    def test_scans_and_publishes(self, mock_client: AsyncMock, mock_complete: AsyncMock) -> None:
        github = _github()
        mock_client.return_value = github
        mock_complete.return_value = "[]"
        store = ScanStore()

        report = asyncio.run(scan_pull_request_event(_event(), store, get_settings()))

        self.assertIsNotNone(report)
        self.assertEqual(mock_client.await_args[0][1], 55)
        self.assertEqual(len(store), 1)
        self.assertEqual(mock_complete.await_count, 2)
        github.create_commit_status.assert_awaited_once()

    @patch("secureship.services.scanner.client_for_installation", new_callable=AsyncMock)
    def test_not_configured_logged(self, mock_client: AsyncMock) -> None:
        mock_client.side_effect = GitHubNotConfiguredError("GitHub is not configured")
        store = ScanStore()
        with self.assertLogs("secureship.services.scanner", level="ERROR"):
            report = asyncio.run(scan_pull_request_event(_event(installation=False), store, get_settings()))
        self.assertIsNone(report)
        self.assertEqual(len(store), 0)

    @patch("secureship.services.scanner.client_for_installation", new_callable=AsyncMock)
    def test_api_failure_logged(self, mock_client: AsyncMock) -> None:
        github = _github()
        github.list_pull_request_files.side_effect = GitHubApiError("GitHub returned 500: oops", 500)
        mock_client.return_value = github
        with self.assertLogs("secureship.services.scanner", level="ERROR"):
            report = asyncio.run(scan_pull_request_event(_event(), ScanStore(), get_settings()))
        self.assertIsNone(report)

    @patch("secureship.services.scanner.client_for_installation", new_callable=AsyncMock)
    def test_unexpected_error_logged(self, mock_client: AsyncMock) -> None:
        github = _github()
        github.list_pull_request_files.side_effect = RuntimeError("bad payload")
        mock_client.return_value = github
        with self.assertLogs("secureship.services.scanner", level="ERROR"):
            report = asyncio.run(scan_pull_request_event(_event(), ScanStore(), get_settings()))
        self.assertIsNone(report)


class TestScanOnDemand(unittest.TestCase):
    @patch("secureship.services.analyzer.complete", new_callable=AsyncMock)
    @patch("secureship.services.scanner.client_for_repo", new_callable=AsyncMock)
    def test_uses_pr_head_and_stays_quiet(self, mock_client: AsyncMock, mock_complete: AsyncMock) -> None:
        github = _github()
        github.get_pull_request.return_value = {"number": 8, "head": {"sha": "fresh"}}
        mock_client.return_value = github
        mock_complete.return_value = "[]"
        store = ScanStore()
        settings = get_settings().model_copy(update={"NOTIFY_ON_DEMAND_SCANS": False})

        report = asyncio.run(scan_on_demand("acme", "api", 8, store, settings))

        self.assertEqual(report.head_sha, "fresh")
        github.get_file_content.assert_awaited_once_with("acme", "api", settings.REPO_CONFIG_PATH, "fresh")
        self.assertIsNotNone(store.get_scan_by_id(report.id))
        github.create_commit_status.assert_not_awaited()

    @patch("secureship.services.analyzer.complete", new_callable=AsyncMock)
    @patch("secureship.services.scanner.client_for_repo", new_callable=AsyncMock)
    def test_notify_override(self, mock_client: AsyncMock, mock_complete: AsyncMock) -> None:
        github = _github()
        mock_client.return_value = github
        mock_complete.return_value = "[]"
        asyncio.run(scan_on_demand("acme", "api", 8, ScanStore(), get_settings(), notify=True))
        github.create_commit_status.assert_awaited_once()
        self.assertEqual(github.create_commit_status.await_args.kwargs["state"], "success")


if __name__ == "__main__":
    unittest.main()
