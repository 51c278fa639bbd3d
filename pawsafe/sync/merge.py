"""
Last-write-wins merge of local and remote report sets.
"""

from dataclasses import replace
from typing import Dict, Iterable, List

from pawsafe.crowdsource.report import HazardReport, SyncStatus


def remote_wins(local: HazardReport, remote: HazardReport) -> bool:
    """
    Decide whether a remote copy replaces the local one.

    Strictly newer remote data wins. On a tie the local copy is kept: a
    pending local edit still has to be pushed, and a synced local copy is
    the echo of the same write.
    """
    return remote.last_modified > local.last_modified


def merge_reports(
    local_reports: Iterable[HazardReport],
    remote_reports: Iterable[HazardReport]
) -> List[HazardReport]:
    """
    Union two report sets by id, preferring the most recently modified copy.

    Args:
        local_reports: Reports from the entity store
        remote_reports: Reports decoded from the remote snapshot

    Returns:
        Merged reports. Local records that win are returned unchanged (same
        objects); records taken from the remote side are marked synced.
    """
    merged: Dict[str, HazardReport] = {}

    for report in local_reports:
        merged[report.id] = report

    for remote in remote_reports:
        local = merged.get(remote.id)

        if local is None or remote_wins(local, remote):
            merged[remote.id] = replace(remote, sync_status=SyncStatus.SYNCED)

    return list(merged.values())
