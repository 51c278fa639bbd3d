"""
Tests for last-write-wins merging
"""
from pawsafe.crowdsource.report import HazardReport, SyncStatus
from pawsafe.sync.merge import merge_reports, remote_wins


def _report(report_id, last_modified, status=SyncStatus.PENDING, **fields):
    return HazardReport(
        id=report_id,
        lat=-22.5,
        lng=-45.5,
        last_modified=last_modified,
        sync_status=status,
        **fields
    )


class TestMergeReports:
    """Test suite for merge_reports."""

    def test_newer_remote_wins(self):
        """Test local 100 vs remote 200 takes the remote copy."""
        local = _report("r1", 100, flagged=False)
        remote = _report("r1", 200, status=SyncStatus.SYNCED, flagged=True)

        merged = merge_reports([local], [remote])

        assert len(merged) == 1
        assert merged[0].flagged is True
        assert merged[0].last_modified == 200
        assert merged[0].sync_status == SyncStatus.SYNCED

    def test_newer_local_wins(self):
        """Test local 300 vs remote 200 keeps the pending local copy."""
        local = _report("r1", 300, flagged=True)
        remote = _report("r1", 200, status=SyncStatus.SYNCED, flagged=False)

        merged = merge_reports([local], [remote])

        assert merged[0] is local
        assert merged[0].sync_status == SyncStatus.PENDING

    def test_tie_keeps_local(self):
        local = _report("r1", 200, status=SyncStatus.SYNCED)
        remote = _report("r1", 200, status=SyncStatus.SYNCED)

        assert remote_wins(local, remote) is False
        assert merge_reports([local], [remote])[0] is local

    def test_disjoint_union(self):
        """Test ids present on only one side are all kept."""
        local = [_report("a", 1), _report("b", 2)]
        remote = [_report("c", 3), _report("d", 4)]

        merged = merge_reports(local, remote)

        assert sorted(r.id for r in merged) == ["a", "b", "c", "d"]

    def test_remote_only_marked_synced(self):
        remote = _report("c", 3, status=SyncStatus.PENDING)

        merged = merge_reports([], [remote])

        assert merged[0].sync_status == SyncStatus.SYNCED

    def test_deterministic(self):
        """Test merging the same inputs twice gives the same result."""
        local = [_report("a", 100), _report("b", 300)]
        remote = [_report("a", 200), _report("b", 200), _report("c", 50)]

        first = {r.id: r.last_modified for r in merge_reports(local, remote)}
        second = {r.id: r.last_modified for r in merge_reports(local, remote)}

        assert first == second == {"a": 200, "b": 300, "c": 50}
