"""API v1 routes."""

from fastapi import APIRouter

from secureship.api.v1 import dashboard, health, scans

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(dashboard.router, tags=["dashboard"])
router.include_router(scans.router, tags=["scans"])
