"""
Tests for proximity detection
"""
import asyncio

import pytest

from pawsafe.core.constants import HAPTIC_PATTERN, MINUTE_MS, PROXIMITY_NOTIFICATION_BODY
from pawsafe.core.geo_utils import destination_point, distance_meters
from pawsafe.proximity.detector import DetectorState, ProximityDetector, ProximityEventType
from pawsafe.proximity.location import LocationError, LocationFix, QueueLocationSource
from pawsafe.proximity.suppression import SuppressionList

HAZARD_LAT = -23.5505
HAZARD_LNG = -46.6333


def fix_at(meters, clock, bearing=90.0):
    """Location fix the given distance east of the hazard."""
    lat, lng = destination_point(HAZARD_LAT, HAZARD_LNG, meters / 1000.0, bearing)
    return LocationFix(lat=lat, lng=lng, timestamp=clock())


class FailingHaptics:
    def vibrate(self, pattern):
        raise RuntimeError("no vibration motor")


@pytest.fixture
def hazard(store, make_report):
    return store.put(make_report(lat=HAZARD_LAT, lng=HAZARD_LNG))


@pytest.fixture
def detector(store, notifier, haptics, clock):
    return ProximityDetector(store, notifier, haptics, clock=clock)


class TestFixHelper:
    def test_offsets_are_accurate(self, clock):
        fix = fix_at(5, clock)
        assert distance_meters(HAZARD_LAT, HAZARD_LNG, fix.lat, fix.lng) == pytest.approx(5, abs=0.01)


class TestHysteresis:
    """Test suite for entry/exit radii and the alert latch."""

    def test_enter_stay_exit(self, detector, hazard, clock, notifier, haptics):
        """Test 2 m enters, 5 m stays, 7 m clears."""
        entered = detector.process_fix(fix_at(2, clock))
        assert entered.type == ProximityEventType.ENTERED
        assert entered.report_ids == [hazard.id]
        assert detector.state == DetectorState.ALERTING

        clock.advance(1000)
        assert detector.process_fix(fix_at(5, clock)) is None
        assert detector.state == DetectorState.ALERTING
        assert detector.in_range == {hazard.id}

        clock.advance(1000)
        cleared = detector.process_fix(fix_at(7, clock))
        assert cleared.type == ProximityEventType.CLEARED
        assert detector.state == DetectorState.IDLE

        assert haptics.patterns == [HAPTIC_PATTERN]
        assert len(notifier.sent_notifications) == 1
        assert notifier.sent_notifications[0].body == PROXIMITY_NOTIFICATION_BODY

    def test_exit_radius_does_not_enter(self, detector, hazard, clock):
        """Test 5 m from idle is outside the entry radius."""
        assert detector.process_fix(fix_at(5, clock)) is None
        assert detector.state == DetectorState.IDLE
        assert detector.in_range == set()

    def test_single_shot_latch(self, detector, hazard, clock, notifier):
        """Test repeated fixes inside range alert only once."""
        detector.process_fix(fix_at(2, clock))
        for _ in range(5):
            clock.advance(1000)
            assert detector.process_fix(fix_at(2, clock)) is None

        assert len(notifier.sent_notifications) == 1

    def test_second_hazard_while_alerting(self, detector, store, make_report, hazard, clock, notifier):
        """Test entering another hazard while alerting does not re-alert."""
        lat, lng = destination_point(HAZARD_LAT, HAZARD_LNG, 0.004, 90.0)
        store.put(make_report(lat=lat, lng=lng))

        detector.process_fix(fix_at(0, clock))
        clock.advance(1000)
        detector.process_fix(fix_at(3.5, clock))

        assert len(detector.in_range) == 2
        assert len(notifier.sent_notifications) == 1

    def test_realert_after_clearing(self, detector, hazard, clock, notifier):
        detector.process_fix(fix_at(2, clock))
        clock.advance(1000)
        detector.process_fix(fix_at(10, clock))
        clock.advance(1000)
        again = detector.process_fix(fix_at(1, clock))

        assert again.type == ProximityEventType.ENTERED
        assert len(notifier.sent_notifications) == 2


class TestRateLimit:
    """Test suite for fix debouncing."""

    def test_fixes_within_interval_dropped(self, detector, hazard, clock):
        detector.process_fix(fix_at(50, clock))

        clock.advance(500)
        assert detector.process_fix(fix_at(2, clock)) is None
        assert detector.state == DetectorState.IDLE

        clock.advance(500)
        event = detector.process_fix(fix_at(2, clock))
        assert event.type == ProximityEventType.ENTERED


class TestCandidates:
    """Test suite for which reports can alert."""

    def test_resolved_and_archived_ignored(self, detector, store, make_report, clock, notifier):
        store.put(make_report(lat=HAZARD_LAT, lng=HAZARD_LNG, resolved=True))
        store.put(make_report(lat=HAZARD_LAT, lng=HAZARD_LNG, archived=True))

        assert detector.process_fix(fix_at(1, clock)) is None
        assert notifier.sent_notifications == []

    def test_suppressed_until_expiry(self, store, notifier, haptics, clock, hazard):
        """Test a suppressed report alerts again after ten minutes."""
        suppression = SuppressionList()
        suppression.suppress(hazard.id, clock())
        detector = ProximityDetector(store, notifier, haptics, suppression=suppression, clock=clock)

        assert detector.process_fix(fix_at(1, clock)) is None

        clock.advance(10 * MINUTE_MS)
        event = detector.process_fix(fix_at(1, clock))

        assert event.type == ProximityEventType.ENTERED
        assert len(suppression) == 0


class TestEnableDisable:
    """Test suite for the proximity alerts toggle."""

    def test_disable_resets_state(self, detector, hazard, clock, notifier):
        detector.process_fix(fix_at(2, clock))

        detector.disable()
        assert detector.state == DetectorState.IDLE
        assert detector.in_range == set()

        clock.advance(1000)
        assert detector.process_fix(fix_at(2, clock)) is None

        detector.enable()
        event = detector.process_fix(fix_at(2, clock))
        assert event.type == ProximityEventType.ENTERED
        assert len(notifier.sent_notifications) == 2

    def test_sink_failure_does_not_block(self, store, notifier, clock, hazard):
        """Test a failing haptic sink is logged and the alert still goes out."""
        alerts = []
        detector = ProximityDetector(
            store, notifier, FailingHaptics(), clock=clock, on_alert=alerts.append
        )

        event = detector.process_fix(fix_at(2, clock))

        assert event.type == ProximityEventType.ENTERED
        assert len(notifier.sent_notifications) == 1
        assert alerts == [event]


class TestLocationWatch:
    """Test suite for the watch handle."""

    @pytest.mark.asyncio
    async def test_watch_processes_fixes(self, detector, hazard, clock, notifier):
        source = QueueLocationSource()
        handle = detector.watch(source)

        source.push(LocationError("POSITION_UNAVAILABLE", "no satellites"))
        source.push(fix_at(2, clock))

        for _ in range(100):
            if notifier.sent_notifications:
                break
            await asyncio.sleep(0.01)

        assert len(notifier.sent_notifications) == 1

        handle.cancel()
        handle.cancel()
        assert handle.cancelled
        assert source.closed

    @pytest.mark.asyncio
    async def test_timeout_keeps_watching(self, detector, hazard, clock, notifier):
        """Test a missing fix times out without ending the watch."""
        detector.fix_timeout = 0.01
        source = QueueLocationSource()
        handle = detector.watch(source)

        await asyncio.sleep(0.05)
        assert not handle.task.done()

        source.push(fix_at(2, clock))
        for _ in range(100):
            if notifier.sent_notifications:
                break
            await asyncio.sleep(0.01)

        assert len(notifier.sent_notifications) == 1
        handle.cancel()

    @pytest.mark.asyncio
    async def test_stream_end_stops_watch(self, detector):
        source = QueueLocationSource()
        handle = detector.watch(source)

        source.close()
        await asyncio.wait_for(handle.task, timeout=1)

        assert handle.task.done()
        handle.cancel()
