"""
Proximity detection for hazard reports.

Turns a noisy location stream into debounced, hysteresis-stable alerts:
a report enters range within the entry radius and stays in range until it
is farther than the exit radius. One alert fires per approach; the latch
clears only once nothing is in range.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set, TYPE_CHECKING

from pawsafe.alerts.haptics import HapticSink
from pawsafe.alerts.push_notification import NotificationSink
from pawsafe.core.clock import Clock, now_ms
from pawsafe.core.constants import (
    ENTRY_RADIUS_METERS,
    EXIT_RADIUS_METERS,
    FIX_DEBOUNCE_MS,
    FIX_TIMEOUT_SECONDS,
    HAPTIC_PATTERN,
    PROXIMITY_NOTIFICATION_BODY,
    PROXIMITY_NOTIFICATION_TAG,
    PROXIMITY_NOTIFICATION_TITLE,
)
from pawsafe.core.exceptions import StoreIOError
from pawsafe.core.geo_utils import distance_meters
from pawsafe.crowdsource.report import HazardReport
from pawsafe.proximity.location import LocationError, LocationFix, LocationSource
from pawsafe.proximity.suppression import SuppressionList

if TYPE_CHECKING:
    from pawsafe.database.store import EntityStore

logger = logging.getLogger(__name__)


class DetectorState(str, Enum):
    IDLE = "idle"
    ALERTING = "alerting"


class ProximityEventType(str, Enum):
    ENTERED = "entered"
    CLEARED = "cleared"


@dataclass
class ProximityEvent:
    """State transition produced by a processed fix."""
    type: ProximityEventType
    report_ids: List[str] = field(default_factory=list)
    timestamp: int = 0


ProximityListener = Callable[[ProximityEvent], None]


class WatchHandle:
    """
    Running location watch.

    ``cancel()`` stops the consumer task and releases the location source;
    later calls do nothing.
    """

    def __init__(self, task: asyncio.Task, source: LocationSource):
        self._task = task
        self._source = source
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> asyncio.Task:
        return self._task

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._task.cancel()
        self._source.close()


class ProximityDetector:
    """
    Geofencing detector over the active hazard reports.

    Only reads the store. Alerts go to the haptic and notification sinks.
    """

    def __init__(
        self,
        store: "EntityStore",
        notifier: NotificationSink,
        haptics: HapticSink,
        suppression: Optional[SuppressionList] = None,
        clock: Clock = now_ms,
        enabled: bool = True,
        on_alert: Optional[ProximityListener] = None,
        on_cleared: Optional[ProximityListener] = None
    ):
        """
        Initialize the detector.

        Args:
            store: Entity store to read reports from
            notifier: Local notification sink
            haptics: Haptic sink
            suppression: Report ids to ignore temporarily
            clock: Source of epoch-millisecond timestamps
            enabled: Start enabled
            on_alert: Called on IDLE -> ALERTING
            on_cleared: Called on ALERTING -> IDLE
        """
        self.store = store
        self.notifier = notifier
        self.haptics = haptics
        self.suppression = suppression if suppression is not None else SuppressionList()
        self.clock = clock
        self.on_alert = on_alert
        self.on_cleared = on_cleared

        self.entry_radius = ENTRY_RADIUS_METERS
        self.exit_radius = EXIT_RADIUS_METERS
        self.debounce_ms = FIX_DEBOUNCE_MS
        self.fix_timeout = FIX_TIMEOUT_SECONDS

        self._enabled = enabled
        self._reset()

    def _reset(self) -> None:
        self.state = DetectorState.IDLE
        self._in_range: Set[str] = set()
        self._last_processed_at: Optional[int] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def in_range(self) -> Set[str]:
        return set(self._in_range)

    def enable(self) -> None:
        if not self._enabled:
            self._enabled = True
            logger.info("Proximity alerts enabled")

    def disable(self) -> None:
        """Stop alerting and forget all range and latch state."""
        self._enabled = False
        self._reset()
        logger.info("Proximity alerts disabled")

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def process_fix(self, fix: LocationFix) -> Optional[ProximityEvent]:
        """
        Evaluate one location fix.

        Fixes arriving within the debounce interval of the last processed
        fix are dropped.

        Args:
            fix: Location fix

        Returns:
            ProximityEvent on a state transition, otherwise None
        """
        if not self._enabled:
            return None

        now = self.clock()
        if self._last_processed_at is not None and now - self._last_processed_at < self.debounce_ms:
            return None
        self._last_processed_at = now

        try:
            candidates = self._candidates(now)
        except StoreIOError as e:
            logger.error(f"Could not read reports for proximity check: {e}")
            return None

        previous = self._in_range
        current: Set[str] = set()
        for report in candidates:
            distance = distance_meters(fix.lat, fix.lng, report.lat, report.lng)
            if distance <= self.entry_radius or (report.id in previous and distance <= self.exit_radius):
                current.add(report.id)

        entered = current - previous
        self._in_range = current

        if entered and self.state == DetectorState.IDLE:
            self.state = DetectorState.ALERTING
            event = ProximityEvent(ProximityEventType.ENTERED, sorted(entered), now)
            logger.info(f"Hazard nearby: {event.report_ids}")
            self._alert(event)
            return event

        if not current and self.state == DetectorState.ALERTING:
            self.state = DetectorState.IDLE
            event = ProximityEvent(ProximityEventType.CLEARED, sorted(previous), now)
            logger.info("Left hazard area")
            self._emit(self.on_cleared, event)
            return event

        return None

    def _candidates(self, now: int) -> List[HazardReport]:
        suppressed = self.suppression.active_ids(now)
        return [
            report for report in self.store.get_active()
            if report.is_active and report.id not in suppressed
        ]

    def _alert(self, event: ProximityEvent) -> None:
        try:
            self.haptics.vibrate(HAPTIC_PATTERN)
        except Exception as e:
            logger.warning(f"Haptic feedback failed: {e}")

        try:
            self.notifier.notify(
                PROXIMITY_NOTIFICATION_TITLE,
                PROXIMITY_NOTIFICATION_BODY,
                tag=PROXIMITY_NOTIFICATION_TAG,
                data={"reportIds": ",".join(event.report_ids)}
            )
        except Exception as e:
            logger.warning(f"Proximity notification failed: {e}")

        self._emit(self.on_alert, event)

    @staticmethod
    def _emit(listener: Optional[ProximityListener], event: ProximityEvent) -> None:
        if listener is None:
            return
        try:
            listener(event)
        except Exception as e:
            logger.error(f"Proximity listener failed: {e}")

    # ------------------------------------------------------------------
    # Location watch
    # ------------------------------------------------------------------

    def watch(self, source: LocationSource) -> WatchHandle:
        """
        Start consuming fixes from a location source.

        Must be called from a running event loop.

        Returns:
            WatchHandle to cancel on shutdown
        """
        task = asyncio.create_task(self._consume(source))
        logger.info("Location watch started")
        return WatchHandle(task, source)

    async def _consume(self, source: LocationSource) -> None:
        while True:
            try:
                fix = await asyncio.wait_for(source.next_fix(), timeout=self.fix_timeout)
            except asyncio.TimeoutError:
                logger.debug("No location fix within timeout")
                continue
            except LocationError as e:
                logger.warning(f"Location error ({e.code}): {e.message}")
                continue

            if fix is None:
                logger.info("Location stream ended")
                return

            self.process_fix(fix)
