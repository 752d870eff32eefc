"""ORM model for persisted scan reports (database store backend)."""

from sqlalchemy import JSON, BigInteger, Column, DateTime, Integer, String, Text, func

from secureship.models.base import Base


class ScanReportRow(Base):
    """
    One row per completed scan, aligned with the ScanReport schema.

    Findings are value-owned by the report and kept in a JSON column with the
    same camelCase shape as the flat-file snapshot.
    """

    __tablename__ = "scan_reports"

    id = Column(String(64), primary_key=True)
    owner = Column(String(255), nullable=False)
    repo = Column(String(255), nullable=False)
    pull_number = Column(Integer, nullable=False)
    head_sha = Column(String(64), nullable=False, default="")
    scanned_at = Column(BigInteger, nullable=False, index=True)
    files_scanned = Column(Integer, nullable=False, default=0)
    findings = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=False)
    overall_risk = Column(String(16), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
