"""
Hazard report handler for crowdsourced data
Receives new reports from users and answers report queries
"""

import logging
import uuid
from typing import Optional, List, Dict, Any, TYPE_CHECKING

from pawsafe.core.clock import Clock, ms_to_datetime, now_ms
from pawsafe.core.geo_utils import BoundingBox, Point, is_valid_coordinate
from pawsafe.crowdsource.report import HazardReport, SyncStatus

if TYPE_CHECKING:
    from pawsafe.database.store import EntityStore

logger = logging.getLogger(__name__)


class ReportHandler:
    """
    Handles hazard reports from users.

    Creates reports in the local store and serves read views over it.
    """

    def __init__(
        self,
        store: "EntityStore",
        clock: Clock = now_ms
    ):
        """
        Initialize report handler.

        Args:
            store: Entity store holding the reports
            clock: Source of epoch-millisecond timestamps
        """
        self.store = store
        self.clock = clock

        logger.info("ReportHandler initialized")

    def create_report(
        self,
        latitude: float,
        longitude: float,
        description: str = "",
        photo_base64: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> HazardReport:
        """
        Create a new hazard report.

        Args:
            latitude: Report latitude
            longitude: Report longitude
            description: Text description
            photo_base64: Inline photo data
            photo_url: Remote photo URL

        Returns:
            Created HazardReport, pending sync

        Raises:
            ValueError: Coordinates are out of range
            StoreIOError: The report could not be saved
        """
        if not is_valid_coordinate(latitude, longitude):
            raise ValueError(f"Invalid coordinates: ({latitude}, {longitude})")

        report = HazardReport(
            id=str(uuid.uuid4()),
            lat=latitude,
            lng=longitude,
            description=(description or "").strip(),
            created_at=ms_to_datetime(self.clock()),
            photo_base64=photo_base64,
            photo_url=photo_url,
        )

        report = self.store.put(report)

        logger.info(f"New report created: {report.id} at ({latitude}, {longitude})")

        return report

    def get_report(self, report_id: str) -> Optional[HazardReport]:
        """Get report by ID."""
        return self.store.get(report_id)

    def get_active_reports(self) -> List[HazardReport]:
        """Get all reports that are not archived."""
        return self.store.get_active()

    def get_reports_in_area(
        self,
        bbox: BoundingBox,
        include_archived: bool = False
    ) -> List[HazardReport]:
        """
        Get reports within a geographic area.

        Args:
            bbox: Bounding box
            include_archived: Also return archived reports

        Returns:
            List of reports in area
        """
        reports = self.store.get_all() if include_archived else self.store.get_active()
        return [r for r in reports if bbox.contains(Point(r.lat, r.lng))]

    def get_statistics(self) -> Dict[str, Any]:
        """Get report statistics."""
        reports = self.store.get_all()
        total = len(reports)

        by_sync_status: Dict[str, int] = {status.value: 0 for status in SyncStatus}
        resolved = 0
        archived = 0
        flagged = 0
        no_glass_found = 0
        with_photo = 0

        for report in reports:
            by_sync_status[report.sync_status.value] += 1

            if report.resolved:
                resolved += 1
            if report.archived:
                archived += 1
            if report.flagged:
                flagged += 1
            if report.no_glass_found:
                no_glass_found += 1
            if report.photo_url or report.photo_base64:
                with_photo += 1

        return {
            "total_reports": total,
            "active": sum(1 for r in reports if r.is_active),
            "resolved": resolved,
            "archived": archived,
            "flagged": flagged,
            "no_glass_found": no_glass_found,
            "with_photo": with_photo,
            "by_sync_status": by_sync_status,
            "resolution_rate": resolved / total if total > 0 else 0
        }
