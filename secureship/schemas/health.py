"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    service: str = Field(default="secureship", description="Service name")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    store_backend: Literal["file", "database"] = Field(
        description="Durability backend behind the scan report store",
    )
    scans_loaded: int = Field(ge=0, description="Scan reports currently held in memory")
