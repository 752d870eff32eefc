"""SQLAlchemy ORM models."""

from secureship.models.base import Base
from secureship.models.scan_report import ScanReportRow

__all__ = ["Base", "ScanReportRow"]
