"""Health check endpoint with scan store status."""

from typing import Annotated

from fastapi import APIRouter, Depends

from secureship.api.deps import get_scan_store
from secureship.core.config import settings
from secureship.schemas.health import HealthResponse
from secureship.services.storage import ScanStore

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(store: Annotated[ScanStore, Depends(get_scan_store)]) -> HealthResponse:
    """
    Return service health status and how many scan reports are loaded.
    Used by load balancers and monitoring.
    """
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        store_backend=settings.STORE_BACKEND,
        scans_loaded=len(store),
    )
