"""
PawSafe application core.

Wires the entity store, sync engine, consensus engine and proximity
detector together and drives them from lifecycle events: startup,
connectivity changes, user actions and shutdown.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Set

from pawsafe.alerts.haptics import HapticSink, LoggingHapticSink
from pawsafe.alerts.push_notification import NotificationSink, get_notification_sink
from pawsafe.core.clock import Clock, now_ms
from pawsafe.core.config import Settings, get_settings
from pawsafe.core.device import get_or_create_device_id
from pawsafe.core.logging import setup_logging
from pawsafe.core.preferences import get_proximity_alerts_enabled, set_proximity_alerts_enabled
from pawsafe.crowdsource.consensus import ConsensusEngine, VoteResult
from pawsafe.crowdsource.report import HazardReport
from pawsafe.crowdsource.report_handler import ReportHandler
from pawsafe.database.connection import DatabaseConnection
from pawsafe.database.store import EntityStore
from pawsafe.proximity.detector import ProximityDetector, WatchHandle
from pawsafe.proximity.location import LocationSource
from pawsafe.proximity.suppression import SuppressionList
from pawsafe.sync.engine import SyncEngine, SyncResult
from pawsafe.sync.remote import FirebaseRemoteStore, InMemoryRemoteStore, RemoteStore

logger = logging.getLogger(__name__)


class PawSafeCore:
    """
    Composition root for one client process.

    Collaborators default to the configured production implementations and
    can be injected for tests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[EntityStore] = None,
        remote: Optional[RemoteStore] = None,
        notifier: Optional[NotificationSink] = None,
        haptics: Optional[HapticSink] = None,
        clock: Clock = now_ms,
        device_id: Optional[str] = None,
        online: bool = True
    ):
        self.settings = settings or get_settings()
        self.clock = clock

        self.store = store or EntityStore(
            DatabaseConnection(self.settings.database_url, echo=self.settings.db_echo),
            clock=clock
        )
        self.remote = remote or self._default_remote()
        self.device_id = device_id or get_or_create_device_id(self.settings.device_id_path)

        self.reports = ReportHandler(self.store, clock=clock)
        self.consensus = ConsensusEngine(self.store, clock=clock)
        self.sync = SyncEngine(
            self.store,
            self.remote,
            reports_path=self.settings.firebase_reports_path,
            online=online
        )
        self.suppression = SuppressionList()
        self.detector = ProximityDetector(
            self.store,
            notifier or get_notification_sink(),
            haptics or LoggingHapticSink(),
            suppression=self.suppression,
            clock=clock,
            enabled=get_proximity_alerts_enabled(
                self.settings.preferences_path,
                default=self.settings.proximity_alerts_enabled
            )
        )

        self._watch: Optional[WatchHandle] = None
        self._background: Set[asyncio.Task] = set()
        self._started = False

    def _default_remote(self) -> RemoteStore:
        if self.settings.remote_configured:
            return FirebaseRemoteStore(
                self.settings.firebase_credentials_path,
                self.settings.firebase_database_url
            )
        logger.warning("Firebase not configured, reports will only sync within this process")
        return InMemoryRemoteStore(self.clock)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def startup(self, location_source: Optional[LocationSource] = None) -> SyncResult:
        """
        Open the store, archive stale reports, sync and start watching location.

        Args:
            location_source: Location stream for proximity alerts

        Returns:
            Result of the startup sync

        Raises:
            MigrationFailure: The local schema could not be upgraded
        """
        setup_logging(self.settings.log_level)

        version = self.store.init()
        logger.info(f"PawSafe starting (schema v{version}, device {self.device_id})")

        archived = self.consensus.auto_archive_resolved()
        if archived:
            logger.info(f"Archived {archived} resolved reports on startup")

        result = await self.sync.start()

        if location_source is not None:
            self._watch = self.detector.watch(location_source)

        self._started = True
        return result

    async def shutdown(self) -> None:
        """Release the location watch and remote subscription, then close the store."""
        if self._watch is not None:
            self._watch.cancel()
            await asyncio.gather(self._watch.task, return_exceptions=True)
            self._watch = None

        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

        await self.sync.stop()

        close_notifier = getattr(self.detector.notifier, "close", None)
        if callable(close_notifier):
            close_notifier()

        self.store.close()
        self._started = False
        logger.info("PawSafe stopped")

    async def set_online(self, online: bool) -> Optional[SyncResult]:
        return await self.sync.on_connectivity_change(online)

    def set_proximity_alerts(self, enabled: bool) -> None:
        """Turn proximity alerts on or off and remember the choice."""
        set_proximity_alerts_enabled(self.settings.preferences_path, enabled)
        if enabled:
            self.detector.enable()
        else:
            self.detector.disable()

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def submit_report(
        self,
        latitude: float,
        longitude: float,
        description: str = "",
        photo_base64: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> HazardReport:
        """
        Create a report, mute its proximity alerts for this device, push it.

        Returns:
            The created report (pending until the background push lands)
        """
        report = self.reports.create_report(
            latitude,
            longitude,
            description=description,
            photo_base64=photo_base64,
            photo_url=photo_url
        )
        self.suppression.suppress(report.id, self.clock())
        self._push_in_background()
        return report

    async def delete_report(self, report_id: str) -> bool:
        return await self.sync.delete_report(report_id)

    # ------------------------------------------------------------------
    # Votes and moderation
    # ------------------------------------------------------------------

    async def confirm_cleared(self, report_id: str) -> VoteResult:
        result = self.consensus.cast_cleared(report_id, self.device_id)
        if result.success:
            self._push_in_background()
        return result

    async def confirm_still_there(self, report_id: str) -> VoteResult:
        result = self.consensus.cast_still_there(report_id, self.device_id)
        if result.success:
            self._push_in_background()
        return result

    async def bulk_mark_resolved(self, report_ids: Iterable[str]) -> int:
        count = self.consensus.bulk_mark_resolved(report_ids)
        if count:
            self._push_in_background()
        return count

    async def set_resolved(self, report_id: str, resolved: bool) -> bool:
        return self._after_change(self.consensus.set_resolved(report_id, resolved))

    async def archive(self, report_id: str) -> bool:
        return self._after_change(self.consensus.archive(report_id))

    async def unarchive(self, report_id: str) -> bool:
        return self._after_change(self.consensus.unarchive(report_id))

    async def toggle_flagged(self, report_id: str) -> Optional[bool]:
        value = self.consensus.toggle_flagged(report_id)
        self._after_change(value is not None)
        return value

    async def toggle_no_glass_found(self, report_id: str) -> Optional[bool]:
        value = self.consensus.toggle_no_glass_found(report_id)
        self._after_change(value is not None)
        return value

    def active_reports(self) -> List[HazardReport]:
        return self.reports.get_active_reports()

    # ------------------------------------------------------------------
    # Background pushes
    # ------------------------------------------------------------------

    def _after_change(self, changed: bool) -> bool:
        if changed:
            self._push_in_background()
        return changed

    def _push_in_background(self) -> None:
        if not self.sync.online:
            logger.debug("Offline, change queued for next sync")
            return
        task = asyncio.create_task(self.sync.push_pending())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_background(self) -> None:
        """Wait until queued background pushes have finished."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
