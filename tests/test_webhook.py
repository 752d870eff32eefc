"""Webhook receiver tests: signature check, event filtering, background scan scheduling."""

import json
import unittest
from unittest.mock import AsyncMock, patch

import httpx
from fastapi.testclient import TestClient
from pydantic import SecretStr

from secureship.api.deps import get_scan_store
from secureship.core.config import get_settings
from secureship.core.security import compute_signature, verify_signature
from secureship.main import app
from secureship.schemas.github import PullRequestEvent
from secureship.services.storage import ScanStore

SECRET = "s3cret"

PR_PAYLOAD = {
    "action": "opened",
    "number": 4,
    "pull_request": {"number": 4, "title": "Add login", "head": {"sha": "deadbeef", "ref": "feature"}},
    "repository": {"name": "api", "full_name": "acme/api", "owner": {"login": "acme"}},
    "installation": {"id": 99},
}


class TestSignature(unittest.TestCase):
    def test_valid_signature(self) -> None:
        body = b'{"a": 1}'
        self.assertTrue(verify_signature(body, compute_signature(body, SECRET), SECRET))

    def test_tampered_body(self) -> None:
        signature = compute_signature(b'{"a": 1}', SECRET)
        self.assertFalse(verify_signature(b'{"a": 2}', signature, SECRET))

    def test_missing_signature(self) -> None:
        self.assertFalse(verify_signature(b"{}", None, SECRET))
        self.assertFalse(verify_signature(b"{}", "", None))

    def test_no_secret_skips_check(self) -> None:
        with self.assertLogs("secureship.core.security", level="WARNING"):
            self.assertTrue(verify_signature(b"{}", "sha256=anything", None))


class TestWebhookEndpoint(unittest.TestCase):
    def setUp(self) -> None:
        self.store = ScanStore()
        app.dependency_overrides[get_scan_store] = lambda: self.store
        self.client = TestClient(app)
        settings = get_settings().model_copy(update={"GITHUB_WEBHOOK_SECRET": SecretStr(SECRET)})
        patcher = patch("secureship.api.webhook.get_settings", return_value=settings)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _post(self, payload: object, event: str = "pull_request", secret: str = SECRET) -> httpx.Response:
        body = json.dumps(payload).encode("utf-8")
        return self.client.post(
            "/webhook",
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-GitHub-Event": event,
                "X-GitHub-Delivery": "delivery-1",
                "X-Hub-Signature-256": compute_signature(body, secret),
            },
        )

    @patch("secureship.api.webhook.scan_pull_request_event", new_callable=AsyncMock)
    def test_opened_pull_request_scheduled(self, mock_scan: AsyncMock) -> None:
        resp = self._post(PR_PAYLOAD)
        self.assertEqual(resp.status_code, 202)
        self.assertEqual(resp.json(), {"message": "Processing"})
        mock_scan.assert_awaited_once()
        event, store, _settings = mock_scan.await_args[0]
        self.assertIsInstance(event, PullRequestEvent)
        self.assertEqual(event.to_context().head_sha, "deadbeef")
        self.assertEqual(event.installation.id, 99)
        self.assertIs(store, self.store)

    @patch("secureship.api.webhook.scan_pull_request_event", new_callable=AsyncMock)
    def test_bad_signature_rejected(self, mock_scan: AsyncMock) -> None:
        resp = self._post(PR_PAYLOAD, secret="wrong")
        self.assertEqual(resp.status_code, 401)
        mock_scan.assert_not_awaited()

    @patch("secureship.api.webhook.scan_pull_request_event", new_callable=AsyncMock)
    def test_missing_signature_rejected(self, mock_scan: AsyncMock) -> None:
        resp = self.client.post("/webhook", json=PR_PAYLOAD, headers={"X-GitHub-Event": "pull_request"})
        self.assertEqual(resp.status_code, 401)
        mock_scan.assert_not_awaited()

    @patch("secureship.api.webhook.scan_pull_request_event", new_callable=AsyncMock)
    def test_other_events_ignored(self, mock_scan: AsyncMock) -> None:
        resp = self._post({"zen": "Keep it logically awesome."}, event="ping")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"message": "Event ignored"})
        mock_scan.assert_not_awaited()

    @patch("secureship.api.webhook.scan_pull_request_event", new_callable=AsyncMock)
    def test_other_actions_ignored(self, mock_scan: AsyncMock) -> None:
        for action in ("closed", "labeled", "edited"):
            resp = self._post({**PR_PAYLOAD, "action": action})
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(resp.json(), {"message": "Action ignored"})
        mock_scan.assert_not_awaited()

    @patch("secureship.api.webhook.scan_pull_request_event", new_callable=AsyncMock)
    def test_synchronize_and_reopened_scheduled(self, mock_scan: AsyncMock) -> None:
        for action in ("synchronize", "reopened"):
            self.assertEqual(self._post({**PR_PAYLOAD, "action": action}).status_code, 202)
        self.assertEqual(mock_scan.await_count, 2)

    def test_malformed_payload(self) -> None:
        resp = self._post({"action": "opened", "repository": {}})
        self.assertEqual(resp.status_code, 422)


if __name__ == "__main__":
    unittest.main()
