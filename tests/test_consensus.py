"""
Tests for crowd voting and moderation
"""
import pytest

from pawsafe.core.constants import DAY_MS, HOUR_MS
from pawsafe.crowdsource.consensus import ConsensusEngine
from pawsafe.crowdsource.report import SyncStatus


@pytest.fixture
def engine(store, clock):
    return ConsensusEngine(store, clock=clock)


@pytest.fixture
def report(store, make_report):
    return store.put(make_report())


class TestClearedVotes:
    """Test suite for cleared confirmations."""

    def test_resolves_on_third_distinct_device(self, engine, store, report):
        """Test exactly the third distinct vote resolves the report."""
        for n, device in enumerate(["a", "b", "c"], start=1):
            result = engine.cast_cleared(report.id, device)
            assert result.success
            assert result.report.cleared_count == n
            assert result.report.resolved is (n == 3)

        assert store.get(report.id).resolved is True

    def test_duplicate_vote_rejected(self, engine, store, report):
        """Test one cleared vote per device."""
        engine.cast_cleared(report.id, "a")
        result = engine.cast_cleared(report.id, "a")

        assert result.success is False
        assert result.already_confirmed is True
        assert store.get(report.id).cleared_count == 1

    def test_vote_marks_pending(self, engine, store, report):
        """Test a vote stamps the report for the next push."""
        store.mark_synced(report.id, report.id, report.last_modified)

        result = engine.cast_cleared(report.id, "a")

        assert result.report.sync_status == SyncStatus.PENDING
        assert result.report.last_modified > report.last_modified

    def test_missing_report(self, engine):
        result = engine.cast_cleared("missing", "a")
        assert result.success is False
        assert result.reason == "not_found"

    def test_archived_report_rejected(self, engine, store, report):
        """Test votes on archived reports do not change state."""
        engine.archive(report.id)
        result = engine.cast_cleared(report.id, "a")

        assert result.success is False
        assert result.reason == "archived"
        assert store.get(report.id).cleared_count == 0


class TestStillThereVotes:
    """Test suite for still-there confirmations and rebuttal."""

    def test_rebuttal_resets_clearing(self, engine, store, report):
        """Test two still-there votes undo three cleared votes."""
        for device in ["a", "b", "c"]:
            engine.cast_cleared(report.id, device)
        assert store.get(report.id).resolved

        engine.cast_still_there(report.id, "d")
        result = engine.cast_still_there(report.id, "e")

        assert result.success
        assert result.report.cleared_count == 0
        assert result.report.still_there_count == 2
        assert result.report.resolved is False

        stored = store.get(report.id)
        assert stored.cleared_confirmations == []
        assert stored.resolved is False

    def test_single_vote_does_not_unresolve(self, engine, store, report):
        for device in ["a", "b", "c"]:
            engine.cast_cleared(report.id, device)

        result = engine.cast_still_there(report.id, "d")

        assert result.success
        assert result.report.resolved is True
        assert result.report.cleared_count == 3

    def test_cooldown(self, engine, clock, report):
        """Test a device may confirm again only after 24 hours."""
        assert engine.cast_still_there(report.id, "a").success

        clock.advance(23 * HOUR_MS)
        repeat = engine.cast_still_there(report.id, "a")
        assert repeat.success is False
        assert repeat.already_confirmed is True

        clock.advance(HOUR_MS + 1)
        later = engine.cast_still_there(report.id, "a")
        assert later.success
        assert later.report.still_there_count == 2

    def test_cleared_vote_after_rebuttal(self, engine, report):
        """Test devices can clear again once their votes were wiped."""
        engine.cast_cleared(report.id, "a")
        engine.cast_still_there(report.id, "x")
        engine.cast_still_there(report.id, "y")

        result = engine.cast_cleared(report.id, "a")

        assert result.success
        assert result.report.cleared_count == 1


class TestAdministrativeActions:
    """Test suite for operator overrides and moderation."""

    def test_bulk_mark_resolved(self, engine, store, make_report):
        a = store.put(make_report())
        b = store.put(make_report())

        assert engine.bulk_mark_resolved([a.id, b.id, "missing"]) == 2
        assert store.get(a.id).resolved
        assert store.get(b.id).resolved

    def test_bulk_mark_resolved_empty(self, engine):
        assert engine.bulk_mark_resolved([]) == 0

    def test_set_resolved(self, engine, store, report):
        assert engine.set_resolved(report.id, True) is True
        assert store.get(report.id).resolved is True

        assert engine.set_resolved(report.id, False) is True
        assert store.get(report.id).resolved is False

        assert engine.set_resolved("missing", True) is False

    def test_toggles(self, engine, store, report):
        assert engine.toggle_flagged(report.id) is True
        assert engine.toggle_flagged(report.id) is False
        assert engine.toggle_no_glass_found(report.id) is True
        assert store.get(report.id).no_glass_found is True
        assert engine.toggle_flagged("missing") is None

    def test_archive_and_unarchive(self, engine, store, clock, report):
        assert engine.archive(report.id) is True
        archived = store.get(report.id)
        assert archived.archived is True
        assert archived.archived_at == clock()

        assert engine.unarchive(report.id) is True
        restored = store.get(report.id)
        assert restored.archived is False
        assert restored.archived_at is None


class TestAutoArchive:
    """Test suite for archiving stale resolved reports."""

    def test_archives_after_seven_days(self, engine, store, clock, report):
        """Test a report resolved 8 days ago is archived once."""
        engine.set_resolved(report.id, True)
        clock.advance(8 * DAY_MS)

        assert engine.auto_archive_resolved() == 1
        assert store.get(report.id).archived is True
        assert engine.auto_archive_resolved() == 0

    def test_keeps_recent_reports(self, engine, store, clock, report):
        """Test a report resolved 6 days ago stays active."""
        engine.set_resolved(report.id, True)
        clock.advance(6 * DAY_MS)

        assert engine.auto_archive_resolved() == 0
        assert store.get(report.id).archived is False

    def test_ignores_unresolved(self, engine, store, clock, report):
        clock.advance(30 * DAY_MS)
        assert engine.auto_archive_resolved() == 0
