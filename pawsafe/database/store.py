"""
Entity store for hazard reports.

The single source of truth consulted by the sync, consensus and proximity
components. Every local mutation stamps ``last_modified`` and marks the
record pending; remote-origin writes keep the remote timestamp and are
marked synced.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pawsafe.core.clock import Clock, now_ms
from pawsafe.core.exceptions import StoreIOError
from pawsafe.crowdsource.report import HazardReport, SyncStatus
from pawsafe.database import migrations
from pawsafe.database.connection import DatabaseConnection
from pawsafe.database.models import ReportRecord

logger = logging.getLogger(__name__)


class EntityStore:
    """
    Durable keyed table of hazard reports.

    Construct once per process, call ``init()`` before use and ``close()``
    on shutdown.
    """

    def __init__(
        self,
        database: DatabaseConnection,
        clock: Clock = now_ms
    ):
        """
        Initialize the store.

        Args:
            database: Connection to the local database
            clock: Source of epoch-millisecond timestamps
        """
        self.database = database
        self.clock = clock
        self.schema_version = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> int:
        """
        Run pending schema migrations.

        Returns:
            Schema version after migrating

        Raises:
            MigrationFailure: A migration failed and was rolled back
        """
        self.schema_version = migrations.upgrade(self.database.engine)
        logger.info(f"Report store ready at schema v{self.schema_version}")
        return self.schema_version

    def close(self) -> None:
        """Release the underlying database connection."""
        self.database.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, report_id: str) -> Optional[HazardReport]:
        """Get report by ID."""
        try:
            with self.database.get_session() as session:
                record = session.get(ReportRecord, report_id)
                return record.to_report() if record else None
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to read report {report_id}: {e}") from e

    def get_all(self) -> List[HazardReport]:
        """Get every report, archived included."""
        return self._select()

    def get_active(self) -> List[HazardReport]:
        """Get reports that are not archived."""
        return self._select(ReportRecord.archived.is_(False))

    def get_pending(self) -> List[HazardReport]:
        """Get reports waiting to be pushed."""
        return self._select(ReportRecord.sync_status == SyncStatus.PENDING.value)

    def _select(self, *criteria) -> List[HazardReport]:
        try:
            with self.database.get_session() as session:
                query = select(ReportRecord).where(*criteria).order_by(ReportRecord.created_at)
                return [record.to_report() for record in session.scalars(query)]
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to list reports: {e}") from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, report: HazardReport, remote_origin: bool = False) -> HazardReport:
        """
        Insert or replace a report.

        Args:
            report: Report to store
            remote_origin: The report came from the remote store

        Returns:
            The report as stored
        """
        return self.put_many([report], remote_origin=remote_origin)[0]

    def put_many(
        self,
        reports: Iterable[HazardReport],
        remote_origin: bool = False
    ) -> List[HazardReport]:
        """Insert or replace several reports in one transaction."""
        stored: List[HazardReport] = []
        try:
            with self.database.get_session() as session:
                for report in reports:
                    record = session.get(ReportRecord, report.id)
                    previous = record.last_modified if record else None
                    report = self._stamp(report, previous, remote_origin)
                    if record is None:
                        session.add(ReportRecord.from_report(report))
                    else:
                        record.apply(report)
                    stored.append(report)
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to write reports: {e}") from e

        return stored

    def update(
        self,
        report_id: str,
        changes: Mapping[str, Any],
        remote_origin: bool = False
    ) -> Optional[HazardReport]:
        """
        Apply partial changes to a report.

        Args:
            report_id: Report ID
            changes: Field name to new value
            remote_origin: The change came from the remote store

        Returns:
            Updated report, or None if it does not exist

        Raises:
            ValueError: A change targets an immutable or unknown field
        """
        updated = self.update_many([report_id], changes, remote_origin=remote_origin)
        return updated[0] if updated else None

    def update_many(
        self,
        report_ids: Iterable[str],
        changes: Mapping[str, Any],
        remote_origin: bool = False
    ) -> List[HazardReport]:
        """Apply the same changes to several reports in one transaction; missing ids are skipped."""
        self._check_changes(changes)

        updated: List[HazardReport] = []
        try:
            with self.database.get_session() as session:
                for report_id in report_ids:
                    record = session.get(ReportRecord, report_id)
                    if record is None:
                        logger.warning(f"Cannot update missing report {report_id}")
                        continue
                    current = record.to_report()
                    report = self._stamp(replace(current, **changes), current.last_modified, remote_origin)
                    record.apply(report)
                    updated.append(report)
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to update reports: {e}") from e

        return updated

    def delete(self, report_id: str) -> bool:
        """
        Physically delete a report.

        Returns:
            True if a row was removed
        """
        try:
            with self.database.get_session() as session:
                record = session.get(ReportRecord, report_id)
                if record is None:
                    return False
                session.delete(record)
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to delete report {report_id}: {e}") from e

        logger.info(f"Report {report_id} deleted")
        return True

    def mark_synced(
        self,
        report_id: str,
        remote_ref: Optional[str],
        expected_last_modified: int
    ) -> bool:
        """
        Record a successful push without stamping ``last_modified``.

        Refuses when the report changed after it was read for pushing, so
        that newer local edits stay pending.

        Returns:
            True if the report was marked synced
        """
        try:
            with self.database.get_session() as session:
                record = session.get(ReportRecord, report_id)
                if record is None or record.last_modified != expected_last_modified:
                    return False
                record.sync_status = SyncStatus.SYNCED.value
                record.remote_ref = remote_ref
        except SQLAlchemyError as e:
            raise StoreIOError(f"Failed to mark report {report_id} synced: {e}") from e

        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _stamp(
        self,
        report: HazardReport,
        previous_last_modified: Optional[int],
        remote_origin: bool
    ) -> HazardReport:
        if remote_origin:
            return replace(report, sync_status=SyncStatus.SYNCED)

        stamp = self.clock()
        floor = max(previous_last_modified or 0, report.last_modified)
        if previous_last_modified is not None and stamp <= floor:
            stamp = floor + 1

        return replace(report, last_modified=stamp, sync_status=SyncStatus.PENDING)

    @staticmethod
    def _check_changes(changes: Mapping[str, Any]) -> None:
        known = HazardReport.__dataclass_fields__
        for name in changes:
            if name not in known:
                raise ValueError(f"Unknown report field: {name}")
            if name in HazardReport.IMMUTABLE_FIELDS:
                raise ValueError(f"Report field is immutable: {name}")
