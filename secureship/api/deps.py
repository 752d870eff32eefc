"""Shared route dependencies."""

from fastapi import Request

from secureship.services.storage import ScanStore


def get_scan_store(request: Request) -> ScanStore:
    """Dependency that returns the process-wide scan store created at startup."""
    return request.app.state.scan_store
