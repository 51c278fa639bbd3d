"""
Bidirectional synchronization between the local store and the remote store.

Pull/merge runs on startup, on every offline to online transition and on
every live remote change notification received while online. Pending local
records are pushed after each pull/merge. Failures never escape: the engine
falls back to local data and reports what went wrong in its results.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, TYPE_CHECKING

from pydantic import ValidationError

from pawsafe.core.exceptions import RemoteUnavailable, StoreIOError
from pawsafe.crowdsource.report import HazardReport
from pawsafe.sync.codec import from_remote, to_remote
from pawsafe.sync.merge import merge_reports
from pawsafe.sync.remote import RemoteChange, RemoteStore, RemoteSubscription

if TYPE_CHECKING:
    from pawsafe.database.store import EntityStore

logger = logging.getLogger(__name__)

ReportsListener = Callable[[List[HazardReport]], None]


@dataclass
class PushResult:
    """Aggregate outcome of pushing pending reports."""
    pushed: int = 0
    failed: int = 0
    # Pushed, but edited locally meanwhile; still pending
    stale: int = 0
    failed_ids: List[str] = field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return self.failed > 0


@dataclass
class SyncResult:
    """Outcome of a pull/merge/push cycle."""
    reports: List[HazardReport]
    remote_available: bool = True
    merged: int = 0
    push: PushResult = field(default_factory=PushResult)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.remote_available and self.error is None and not self.push.partial_failure


class SyncEngine:
    """
    Reconciles the entity store with the remote store.

    Long-lived resources (the remote subscription and its notification
    pump) are opened by ``start()``/connectivity changes and released by
    ``stop()``.
    """

    def __init__(
        self,
        store: "EntityStore",
        remote: RemoteStore,
        reports_path: str = "reports",
        online: bool = True,
        on_update: Optional[ReportsListener] = None
    ):
        """
        Initialize sync engine.

        Args:
            store: Local entity store
            remote: Remote store adapter
            reports_path: Remote path holding one document per report
            online: Initial connectivity state
            on_update: Called with the current reports after each sync
        """
        self.store = store
        self.remote = remote
        self.reports_path = reports_path.strip("/")
        self.online = online
        self.on_update = on_update

        self._lock = asyncio.Lock()
        self._last_snapshot: List[HazardReport] = []
        self._subscription: Optional[RemoteSubscription] = None
        self._notifications: Optional[asyncio.Queue] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _report_path(self, report_id: str) -> str:
        return f"{self.reports_path}/{report_id}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> SyncResult:
        """
        Initial sync and, when online, live subscription.

        Returns:
            Result of the startup sync (local data only when offline)
        """
        self._loop = asyncio.get_running_loop()

        if not self.online:
            logger.info("Starting offline, using local data only")
            return self._local_result(remote_available=False)

        result = await self.full_sync()
        await self._ensure_subscribed()
        return result

    async def stop(self) -> None:
        """Release the remote subscription and the notification pump."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

        if self._pump_task is not None:
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            self._pump_task = None

        logger.info("Sync engine stopped")

    async def on_connectivity_change(self, online: bool) -> Optional[SyncResult]:
        """
        React to a connectivity transition.

        Returns:
            Sync result when coming back online, otherwise None
        """
        was_online = self.online
        self.online = online

        if online and not was_online:
            logger.info("Online: starting sync")
            result = await self.full_sync()
            await self._ensure_subscribed()
            return result

        if not online and was_online:
            logger.info("Offline: changes will sync when back online")

        return None

    # ------------------------------------------------------------------
    # Pull / merge / push
    # ------------------------------------------------------------------

    async def fetch_remote(self) -> List[HazardReport]:
        """
        Read the full remote snapshot.

        Malformed documents are skipped.

        Raises:
            RemoteUnavailable: The remote store could not be read
        """
        data = await asyncio.to_thread(self.remote.get, self.reports_path)
        if not data:
            return []

        reports: List[HazardReport] = []
        for key, document in data.items():
            try:
                reports.append(from_remote(document, key))
            except (ValidationError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed remote report {key}: {e}")

        logger.debug(f"Fetched {len(reports)} reports from remote store")
        return reports

    async def full_sync(self) -> SyncResult:
        """
        Pull the remote snapshot, merge it into the store, push pending changes.

        Returns:
            SyncResult; on remote failure the last known local snapshot with
            ``remote_available=False``
        """
        async with self._lock:
            return await self._sync_locked()

    async def _sync_locked(self) -> SyncResult:
        try:
            remote_reports = await self.fetch_remote()
        except RemoteUnavailable as e:
            logger.warning(f"Sync failed, using local data only: {e}")
            return self._local_result(remote_available=False, error=str(e))

        try:
            merged = self._apply_merge(remote_reports)
        except StoreIOError as e:
            logger.error(f"Merging remote reports failed: {e}")
            return self._local_result(error=str(e))

        push = await self._push_locked()

        result = self._local_result()
        result.merged = merged
        result.push = push
        logger.info(
            f"Sync complete: {len(result.reports)} reports, "
            f"{merged} applied from remote, {push.pushed} pushed"
        )
        return result

    def _apply_merge(self, remote_reports: List[HazardReport]) -> int:
        local_reports = self.store.get_all()
        local_by_id = {report.id: report for report in local_reports}

        merged = merge_reports(local_reports, remote_reports)
        incoming = [r for r in merged if r is not local_by_id.get(r.id)]

        if incoming:
            self.store.put_many(incoming, remote_origin=True)

        return len(incoming)

    async def push_pending(self) -> PushResult:
        """Push every pending report; failures stay pending for a later retry."""
        async with self._lock:
            return await self._push_locked()

    async def _push_locked(self) -> PushResult:
        result = PushResult()

        try:
            pending = self.store.get_pending()
        except StoreIOError as e:
            logger.error(f"Could not read pending reports: {e}")
            return result

        for report in pending:
            try:
                remote_ref = await asyncio.to_thread(
                    self.remote.set, self._report_path(report.id), to_remote(report)
                )
                marked = self.store.mark_synced(report.id, remote_ref, report.last_modified)
            except (RemoteUnavailable, StoreIOError) as e:
                logger.debug(f"Push of report {report.id} failed: {e}")
                result.failed += 1
                result.failed_ids.append(report.id)
                continue
            if marked:
                result.pushed += 1
            else:
                logger.debug(f"Report {report.id} changed during push, left pending")
                result.stale += 1

        if result.failed:
            logger.warning(f"Failed to sync {result.failed} report(s); they will be retried")
        elif result.pushed:
            logger.info(f"Pushed {result.pushed} pending report(s)")

        return result

    async def delete_report(self, report_id: str) -> bool:
        """
        Administratively delete a report locally and remotely.

        Returns:
            True if the local row was removed; a remote failure is logged
        """
        try:
            removed = self.store.delete(report_id)
        except StoreIOError as e:
            logger.error(f"Deleting report {report_id} failed: {e}")
            return False

        try:
            await asyncio.to_thread(self.remote.delete, self._report_path(report_id))
        except RemoteUnavailable as e:
            logger.warning(f"Remote delete of report {report_id} failed: {e}")

        return removed

    async def test_connection(self) -> bool:
        """Check that the remote reports path is readable."""
        try:
            data = await asyncio.to_thread(self.remote.get, self.reports_path)
        except RemoteUnavailable as e:
            logger.error(f"Remote connection test failed ({e.code}): {e}")
            return False

        count = len(data) if isinstance(data, dict) else 0
        logger.info(f"Remote connection OK, {count} reports")
        return True

    # ------------------------------------------------------------------
    # Live notifications
    # ------------------------------------------------------------------

    async def handle_remote_change(self) -> Optional[SyncResult]:
        """
        Apply a remote change notification.

        Dropped while offline; otherwise a full pull/merge/push.
        """
        if not self.online:
            logger.debug("Offline, skipping remote update")
            return None
        return await self.full_sync()

    async def _ensure_subscribed(self) -> None:
        if self._subscription is not None:
            return

        self._loop = asyncio.get_running_loop()
        self._notifications = asyncio.Queue()

        try:
            self._subscription = await asyncio.to_thread(
                self.remote.subscribe, self.reports_path, self._on_remote_change
            )
        except RemoteUnavailable as e:
            logger.warning(f"Live updates unavailable, will retry when online: {e}")
            return

        if self._pump_task is None:
            self._pump_task = asyncio.create_task(self._pump())

    def _on_remote_change(self, change: RemoteChange) -> None:
        # May run on the remote client's thread
        if self._loop is None or self._notifications is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._notifications.put_nowait, change)

    async def _pump(self) -> None:
        while True:
            change = await self._notifications.get()
            # Coalesce bursts: one sync covers every queued change
            while not self._notifications.empty():
                self._notifications.get_nowait()
            logger.debug(f"Remote change at {change.path}")
            try:
                await self.handle_remote_change()
            except Exception:
                logger.exception("Applying remote change failed, waiting for the next one")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _local_result(
        self,
        remote_available: bool = True,
        error: Optional[str] = None
    ) -> SyncResult:
        try:
            self._last_snapshot = self.store.get_all()
        except StoreIOError as e:
            logger.error(f"Reading local reports failed, returning last snapshot: {e}")
            error = error or str(e)

        result = SyncResult(
            reports=list(self._last_snapshot),
            remote_available=remote_available,
            error=error,
        )
        self._notify(result.reports)
        return result

    def _notify(self, reports: List[HazardReport]) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(reports)
        except Exception as e:
            logger.error(f"Reports listener failed: {e}")
