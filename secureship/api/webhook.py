"""GitHub webhook receiver: verify the delivery, accept pull_request events, scan in the background."""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from secureship.api.deps import get_scan_store
from secureship.core.config import get_settings
from secureship.core.security import verify_signature
from secureship.schemas.github import PullRequestEvent
from secureship.services.scanner import scan_pull_request_event
from secureship.services.storage import ScanStore

logger = logging.getLogger(__name__)
router = APIRouter()

# Pull request actions that change the code under review.
SCANNED_ACTIONS = frozenset({"opened", "synchronize", "reopened"})


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    store: Annotated[ScanStore, Depends(get_scan_store)],
    x_github_event: Annotated[str | None, Header()] = None,
    x_hub_signature_256: Annotated[str | None, Header()] = None,
    x_github_delivery: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    """
    Receive a GitHub App webhook delivery.

    Deliveries must carry a valid X-Hub-Signature-256 for the raw body. Only
    pull_request events with action opened, synchronize, or reopened start a
    scan; the response (202) is returned before the scan runs.
    """
    logger.info("Received webhook: %s (%s)", x_github_event, x_github_delivery)
    settings = get_settings()
    secret = (
        settings.GITHUB_WEBHOOK_SECRET.get_secret_value()
        if settings.GITHUB_WEBHOOK_SECRET is not None
        else None
    )
    payload = await request.body()
    if not verify_signature(payload, x_hub_signature_256, secret):
        logger.error("Invalid webhook signature", extra={"delivery_id": x_github_delivery})
        raise HTTPException(status_code=401, detail="Invalid signature")

    if x_github_event != "pull_request":
        return JSONResponse(status_code=200, content={"message": "Event ignored"})

    try:
        event = PullRequestEvent.model_validate_json(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid pull_request payload: {e.error_count()} validation error(s).",
        ) from e

    if event.action not in SCANNED_ACTIONS:
        return JSONResponse(status_code=200, content={"message": "Action ignored"})

    background_tasks.add_task(scan_pull_request_event, event, store, settings)
    return JSONResponse(status_code=202, content={"message": "Processing"})
