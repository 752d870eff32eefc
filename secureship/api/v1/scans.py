"""Scan report endpoints: paginated listing, lookup by id, and on-demand PR scans."""

import logging
import math
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from secureship.api.deps import get_scan_store
from secureship.core.config import get_settings
from secureship.schemas.scans import ScanListResponse, ScanReport, ScanRequest, ScanResponse
from secureship.services.github import GitHubApiError, GitHubNotConfiguredError
from secureship.services.scanner import scan_on_demand
from secureship.services.storage import DEFAULT_PAGE_LIMIT, DEFAULT_SORT_BY, ScanStore

logger = logging.getLogger(__name__)
router = APIRouter()

MAX_PAGE_LIMIT = 100


@router.get("/scans", response_model=ScanListResponse)
def list_scans(
    store: Annotated[ScanStore, Depends(get_scan_store)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_LIMIT)] = DEFAULT_PAGE_LIMIT,
    repo: Annotated[str | None, Query(description='Filter by "owner/repo".')] = None,
    sort_by: Annotated[
        str,
        Query(
            alias="sortBy",
            description="Numeric field to order by (scannedAt, pullNumber, filesScanned); other fields keep insertion order.",
        ),
    ] = DEFAULT_SORT_BY,
    order: Annotated[Literal["asc", "desc"], Query()] = "desc",
) -> ScanListResponse:
    """List scan reports, newest first by default, with 1-based pagination."""
    scans, total = store.list_scans(
        page=page, limit=limit, repo=repo or None, sort_by=sort_by, order=order
    )
    return ScanListResponse(
        scans=scans,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.get("/scans/{scan_id}", response_model=ScanReport)
def get_scan(
    scan_id: str,
    store: Annotated[ScanStore, Depends(get_scan_store)],
) -> ScanReport:
    scan = store.get_scan_by_id(scan_id)
    if scan is None:
        raise HTTPException(status_code=404, detail="Scan not found")
    return scan


@router.post("/scan", response_model=ScanResponse, status_code=201)
async def post_scan(
    body: ScanRequest,
    store: Annotated[ScanStore, Depends(get_scan_store)],
) -> ScanResponse:
    """
    Scan a pull request now and return the stored report.

    Body: {"repo": "owner/name", "pr": 123}. The scan runs synchronously;
    results are posted back to GitHub only when NOTIFY_ON_DEMAND_SCANS is set.
    """
    owner, name = body.owner_and_name
    try:
        report = await scan_on_demand(owner, name, body.pr, store, get_settings())
    except GitHubNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except GitHubApiError as e:
        logger.error(
            "On-demand scan failed",
            extra={
                "repo": body.repo,
                "pull_number": body.pr,
                "status_code": e.status_code,
                "reason": e.message[:500],
            },
        )
        if e.status_code == 404:
            raise HTTPException(
                status_code=404,
                detail=f"Pull request {body.repo}#{body.pr} not found or not accessible.",
            ) from e
        raise HTTPException(status_code=502, detail=e.message) from e
    return ScanResponse(scan=report)
