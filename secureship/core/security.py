"""Webhook signature verification (GitHub X-Hub-Signature-256)."""

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str) -> str:
    """Return "sha256=" + hex HMAC-SHA256 of the raw request body."""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(payload: bytes, signature: str | None, secret: str | None) -> bool:
    """
    Check a webhook delivery signature in constant time.

    A missing signature always fails. With no secret configured the check is
    skipped (logged as a warning) so local tunnels work without setup.
    """
    if not signature:
        return False
    if not secret:
        logger.warning("GITHUB_WEBHOOK_SECRET not set, skipping signature verification")
        return True
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
