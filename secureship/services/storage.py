"""Scan report store: in-memory maps by id and by repository, with pluggable snapshot durability.

The in-memory state is authoritative for the process lifetime. Every insert
is followed by a synchronous best-effort persist of the full state; there is
no locking, so two concurrent writers may race and the last snapshot wins.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Protocol

from pydantic import TypeAdapter
from sqlalchemy.exc import SQLAlchemyError

from secureship.models import ScanReportRow
from secureship.schemas.findings import Finding
from secureship.schemas.scans import NotableFinding, ScanReport, ScanStats, SeverityCounts
from secureship.services.risk import count_by_severity

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from secureship.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 20
DEFAULT_NOTABLE_LIMIT = 50
DEFAULT_SORT_BY = "scannedAt"
NOTABLE_SEVERITIES = frozenset({"critical", "high"})

# Errors a backend may raise on load/persist; all are logged, never fatal.
_STORAGE_ERRORS = (OSError, ValueError, SQLAlchemyError)

_REPORT_LIST = TypeAdapter(list[ScanReport])

# Accept both the JSON name (scannedAt) and the attribute name (scanned_at).
_SORT_FIELD_NAMES: dict[str, str] = {}
for _name, _field in ScanReport.model_fields.items():
    _SORT_FIELD_NAMES[_name] = _name
    if _field.alias:
        _SORT_FIELD_NAMES[_field.alias] = _name


class ScanBackend(Protocol):
    """Durability for the store: load everything at startup, persist everything after a write."""

    def load(self) -> list[ScanReport]: ...

    def persist(self, reports: list[ScanReport]) -> None: ...


class JsonFileBackend:
    """One JSON array of scan reports, rewritten wholesale on every persist."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[ScanReport]:
        if not self.path.exists():
            return []
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return _REPORT_LIST.validate_python(data)

    def persist(self, reports: list[ScanReport]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump(mode="json", by_alias=True) for r in reports]
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)


class DatabaseBackend:
    """SQL table of scan reports. Reports are immutable, so persist only inserts new ids."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def load(self) -> list[ScanReport]:
        db = self.session_factory()
        try:
            rows = (
                db.query(ScanReportRow)
                .order_by(ScanReportRow.scanned_at, ScanReportRow.id)
                .all()
            )
            return [_row_to_report(row) for row in rows]
        finally:
            db.close()

    def persist(self, reports: list[ScanReport]) -> None:
        db = self.session_factory()
        try:
            existing = {row_id for (row_id,) in db.query(ScanReportRow.id).all()}
            for report in reports:
                if report.id not in existing:
                    db.add(_report_to_row(report))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()


def _report_to_row(report: ScanReport) -> ScanReportRow:
    return ScanReportRow(
        id=report.id,
        owner=report.owner,
        repo=report.repo,
        pull_number=report.pull_number,
        head_sha=report.head_sha,
        scanned_at=report.scanned_at,
        files_scanned=report.files_scanned,
        findings=[f.model_dump(mode="json", by_alias=True) for f in report.findings],
        summary=report.summary,
        overall_risk=report.overall_risk,
    )


def _row_to_report(row: ScanReportRow) -> ScanReport:
    return ScanReport(
        id=row.id,
        owner=row.owner,
        repo=row.repo,
        pull_number=row.pull_number,
        head_sha=row.head_sha,
        scanned_at=row.scanned_at,
        files_scanned=row.files_scanned,
        findings=row.findings or [],
        summary=row.summary,
        overall_risk=row.overall_risk,
    )


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _sort_scans(
    scans: list[ScanReport],
    sort_by: str,
    order: Literal["asc", "desc"] | str,
) -> list[ScanReport]:
    """
    Order scans by a numeric field (scannedAt, pullNumber, filesScanned).

    Only numeric fields are orderable: an unknown or non-numeric field (e.g.
    owner, repo) leaves the input order unchanged. Ties keep their input order.
    """
    attr = _SORT_FIELD_NAMES.get(sort_by)
    if attr is None:
        return scans
    if not all(_is_number(getattr(s, attr)) for s in scans):
        return scans
    return sorted(scans, key=lambda s: getattr(s, attr), reverse=(order == "desc"))


class ScanStore:
    """Holds completed scan reports keyed by id, with a secondary "owner/repo" -> ids index."""

    def __init__(self, backend: ScanBackend | None = None) -> None:
        self._backend = backend
        self._scans_by_id: dict[str, ScanReport] = {}
        self._scans_by_repo: dict[str, list[str]] = {}

    def __len__(self) -> int:
        return len(self._scans_by_id)

    def load(self) -> int:
        """
        Replace in-memory state with the backend snapshot. Returns the number loaded.

        A missing or unreadable snapshot is logged and leaves the store empty.
        """
        self._scans_by_id.clear()
        self._scans_by_repo.clear()
        if self._backend is None:
            return 0
        try:
            reports = self._backend.load()
        except _STORAGE_ERRORS:
            logger.exception("Error loading scans; starting with an empty store")
            return 0
        for report in reports:
            if report.id in self._scans_by_id:
                logger.warning("Skipping duplicate scan id in snapshot: %s", report.id)
                continue
            self._index(report)
        logger.info("Loaded %s existing scan reports", len(self._scans_by_id))
        return len(self._scans_by_id)

    def _index(self, report: ScanReport) -> None:
        self._scans_by_id[report.id] = report
        self._scans_by_repo.setdefault(report.repo_key, []).append(report.id)

    def _persist(self) -> None:
        if self._backend is None:
            return
        try:
            self._backend.persist(list(self._scans_by_id.values()))
        except _STORAGE_ERRORS:
            logger.exception(
                "Error saving scans; in-memory state kept",
                extra={"scan_count": len(self._scans_by_id)},
            )

    def save_scan(self, report: ScanReport) -> None:
        """Insert a new report, index it by repository, then persist the full state."""
        if report.id in self._scans_by_id:
            raise ValueError(f"Scan report {report.id!r} already exists; reports are immutable.")
        self._index(report.model_copy(deep=True))
        self._persist()

    def get_scan_by_id(self, scan_id: str) -> ScanReport | None:
        report = self._scans_by_id.get(scan_id)
        return report.model_copy(deep=True) if report is not None else None

    def list_scans(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        repo: str | None = None,
        sort_by: str = DEFAULT_SORT_BY,
        order: str = "desc",
    ) -> tuple[list[ScanReport], int]:
        """
        Return one page of scans and the total count before pagination.

        repo filters by exact "owner/repo"; page is 1-based.
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be at least 1")
        if repo:
            ids = self._scans_by_repo.get(repo, [])
            scans = [self._scans_by_id[i] for i in ids]
        else:
            scans = list(self._scans_by_id.values())
        scans = _sort_scans(scans, sort_by, order)
        total = len(scans)
        start = (page - 1) * limit
        return [s.model_copy(deep=True) for s in scans[start : start + limit]], total

    def get_stats(self) -> ScanStats:
        scans = list(self._scans_by_id.values())
        all_findings: list[Finding] = [f for s in scans for f in s.findings]
        return ScanStats(
            total_scans=len(scans),
            total_findings=len(all_findings),
            by_severity=SeverityCounts(**count_by_severity(all_findings)),
            last_scan_at=max((s.scanned_at for s in scans), default=None),
        )

    def get_notable_findings(self, limit: int = DEFAULT_NOTABLE_LIMIT) -> list[NotableFinding]:
        """Critical and high findings across all scans: critical first, then newest scan first."""
        notable = [
            NotableFinding(
                scan_id=scan.id,
                owner=scan.owner,
                repo=scan.repo,
                pull_number=scan.pull_number,
                scanned_at=scan.scanned_at,
                finding=finding,
            )
            for scan in list(self._scans_by_id.values())
            for finding in scan.findings
            if finding.severity in NOTABLE_SEVERITIES
        ]
        notable.sort(key=lambda n: (0 if n.finding.severity == "critical" else 1, -n.scanned_at))
        return notable[: max(limit, 0)]

    def get_repos(self) -> list[str]:
        return list(self._scans_by_repo.keys())


def build_scan_store(settings: Settings) -> ScanStore:
    """Create the store for the configured backend. Call load() to read the snapshot."""
    if settings.STORE_BACKEND == "database":
        from secureship.core.database import get_session_factory

        return ScanStore(DatabaseBackend(get_session_factory()))
    return ScanStore(JsonFileBackend(settings.scans_file))
