"""
SQLAlchemy models for PawSafe
Local SQLite persistence of hazard reports
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import (
    Column, Integer, BigInteger, Float, String, Text, Boolean,
    DateTime, JSON
)
from sqlalchemy.orm import declarative_base

from pawsafe.core.constants import REPORTS_TABLE
from pawsafe.crowdsource.report import Confirmation, HazardReport, SyncStatus

Base = declarative_base()


def _ledger_to_json(ledger: List[Confirmation]) -> List[Dict[str, str]]:
    return [c.to_dict() for c in ledger]


def _ledger_from_json(data: Any) -> List[Confirmation]:
    return [Confirmation.from_dict(item) for item in (data or [])]


class ReportRecord(Base):
    """
    Persisted hazard report row.

    Mirrors the schema produced by the latest migration; the migrations
    package, not ``create_all``, owns the table definition.
    """
    __tablename__ = REPORTS_TABLE

    # v1: base fields
    id = Column(String(64), primary_key=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    photo_base64 = Column(Text)
    photo_url = Column(String(2048))
    created_at = Column(DateTime, nullable=False)
    cleared_count = Column(Integer, nullable=False, default=0)
    resolved = Column(Boolean, nullable=False, default=False)

    # v2: ledgers and sync bookkeeping
    still_there_count = Column(Integer, nullable=False, default=0)
    still_there_confirmations = Column(JSON, nullable=False, default=list)
    cleared_confirmations = Column(JSON, nullable=False, default=list)
    sync_status = Column(String(16), nullable=False, default=SyncStatus.PENDING.value)
    last_modified = Column(BigInteger)
    remote_ref = Column(String(128))

    # v3: archiving and moderation
    archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(BigInteger)
    flagged = Column(Boolean, nullable=False, default=False)

    # v4
    no_glass_found = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<ReportRecord({self.id}, lat={self.lat}, lng={self.lng}, status={self.sync_status})>"

    @classmethod
    def from_report(cls, report: HazardReport) -> "ReportRecord":
        """Create a row from a domain report."""
        record = cls(id=report.id)
        record.apply(report)
        return record

    def apply(self, report: HazardReport) -> None:
        """Copy every field of a domain report onto this row."""
        created_at = report.created_at
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)

        self.lat = report.lat
        self.lng = report.lng
        self.description = report.description
        self.photo_base64 = report.photo_base64
        self.photo_url = report.photo_url
        self.created_at = created_at
        self.cleared_count = report.cleared_count
        self.resolved = report.resolved
        self.still_there_count = report.still_there_count
        self.still_there_confirmations = _ledger_to_json(report.still_there_confirmations)
        self.cleared_confirmations = _ledger_to_json(report.cleared_confirmations)
        self.sync_status = report.sync_status.value
        self.last_modified = report.last_modified
        self.remote_ref = report.remote_ref
        self.archived = report.archived
        self.archived_at = report.archived_at
        self.flagged = report.flagged
        self.no_glass_found = report.no_glass_found

    def to_report(self) -> HazardReport:
        """Convert to a detached domain report."""
        created_at = self.created_at or datetime.now(timezone.utc)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return HazardReport(
            id=self.id,
            lat=self.lat,
            lng=self.lng,
            description=self.description or "",
            created_at=created_at,
            photo_base64=self.photo_base64,
            photo_url=self.photo_url,
            resolved=bool(self.resolved),
            cleared_confirmations=_ledger_from_json(self.cleared_confirmations),
            still_there_confirmations=_ledger_from_json(self.still_there_confirmations),
            flagged=bool(self.flagged),
            no_glass_found=bool(self.no_glass_found),
            archived=bool(self.archived),
            archived_at=self.archived_at,
            sync_status=SyncStatus(self.sync_status or SyncStatus.PENDING.value),
            last_modified=self.last_modified or 0,
            remote_ref=self.remote_ref,
        )
