"""Dashboard endpoints: aggregate stats, notable findings feed, known repositories."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from secureship.api.deps import get_scan_store
from secureship.schemas.scans import NotableFindingsResponse, ReposResponse, ScanStats
from secureship.services.storage import DEFAULT_NOTABLE_LIMIT, ScanStore

router = APIRouter()

MAX_NOTABLE_LIMIT = 200


@router.get("/stats", response_model=ScanStats)
def get_stats(store: Annotated[ScanStore, Depends(get_scan_store)]) -> ScanStats:
    """Totals across all scans: scan count, finding count, per-severity counts, last scan time."""
    return store.get_stats()


@router.get("/notable", response_model=NotableFindingsResponse)
def get_notable(
    store: Annotated[ScanStore, Depends(get_scan_store)],
    limit: Annotated[int, Query(ge=1, le=MAX_NOTABLE_LIMIT)] = DEFAULT_NOTABLE_LIMIT,
) -> NotableFindingsResponse:
    """Critical and high findings across all scans, critical first, then newest scan first."""
    notable = store.get_notable_findings(limit)
    return NotableFindingsResponse(total=len(notable), findings=notable)


@router.get("/repos", response_model=ReposResponse)
def get_repos(store: Annotated[ScanStore, Depends(get_scan_store)]) -> ReposResponse:
    return ReposResponse(repos=store.get_repos())
