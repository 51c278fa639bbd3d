"""
Crowd consensus over hazard reports.

Turns independent, device-scoped confirmations into a shared resolution
state. Three distinct "cleared" votes resolve a hazard; two "still there"
votes rebut it, wiping clearing progress and un-resolving it. Operators can
override resolution directly.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, TYPE_CHECKING

from pawsafe.core.clock import Clock, ms_to_datetime, now_ms
from pawsafe.core.constants import (
    AUTO_ARCHIVE_AFTER_MS,
    CLEARED_THRESHOLD,
    STILL_THERE_COOLDOWN_MS,
    STILL_THERE_REBUTTAL_THRESHOLD,
)
from pawsafe.core.exceptions import StoreIOError
from pawsafe.crowdsource.report import Confirmation, HazardReport

if TYPE_CHECKING:
    from pawsafe.database.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class VoteResult:
    """Outcome of a vote; a duplicate vote is an expected rejection, not an error."""
    success: bool
    already_confirmed: bool = False
    reason: Optional[str] = None
    report: Optional[HazardReport] = None

    @classmethod
    def rejected(cls, reason: str) -> "VoteResult":
        return cls(success=False, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "already_confirmed": self.already_confirmed,
            "reason": self.reason,
        }


class ConsensusEngine:
    """
    Vote, moderation and lifecycle transitions for hazard reports.

    All reads and writes go through the entity store; every mutation marks
    the report pending for the next sync.
    """

    def __init__(
        self,
        store: "EntityStore",
        clock: Clock = now_ms
    ):
        """
        Initialize the engine.

        Args:
            store: Entity store holding the reports
            clock: Source of epoch-millisecond timestamps
        """
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    def cast_cleared(self, report_id: str, device_id: str) -> VoteResult:
        """
        Confirm that a hazard is gone.

        Args:
            report_id: Report ID
            device_id: Voting device

        Returns:
            VoteResult; ``already_confirmed`` when this device voted before
        """
        try:
            report = self.store.get(report_id)
            if report is None:
                return VoteResult.rejected("not_found")
            if report.archived:
                logger.info(f"Ignoring cleared vote on archived report {report_id}")
                return VoteResult.rejected("archived")
            if report.has_device_confirmed_cleared(device_id):
                return VoteResult(success=False, already_confirmed=True, reason="already_confirmed")

            now = self.clock()
            ledger = report.cleared_confirmations + [Confirmation(device_id, ms_to_datetime(now))]
            changes: Dict[str, Any] = {"cleared_confirmations": ledger}
            if len(ledger) >= CLEARED_THRESHOLD:
                changes["resolved"] = True

            updated = self.store.update(report_id, changes)
        except StoreIOError as e:
            logger.error(f"Cleared vote on {report_id} failed: {e}")
            return VoteResult.rejected("store_error")

        if updated is None:
            return VoteResult.rejected("not_found")

        if updated.resolved and not report.resolved:
            logger.info(f"Report {report_id} resolved after {updated.cleared_count} cleared votes")

        return VoteResult(success=True, report=updated)

    def cast_still_there(self, report_id: str, device_id: str) -> VoteResult:
        """
        Confirm that a hazard persists.

        Reaching the rebuttal threshold erases all cleared votes and forces
        the report back to unresolved.

        Args:
            report_id: Report ID
            device_id: Voting device

        Returns:
            VoteResult; ``already_confirmed`` when this device voted within
            the cooldown window
        """
        try:
            report = self.store.get(report_id)
            if report is None:
                return VoteResult.rejected("not_found")
            if report.archived:
                logger.info(f"Ignoring still-there vote on archived report {report_id}")
                return VoteResult.rejected("archived")

            now = self.clock()
            if report.has_device_confirmed_still_there_recently(device_id, now, STILL_THERE_COOLDOWN_MS):
                return VoteResult(success=False, already_confirmed=True, reason="already_confirmed")

            ledger = report.still_there_confirmations + [Confirmation(device_id, ms_to_datetime(now))]
            changes: Dict[str, Any] = {"still_there_confirmations": ledger}
            rebuttal = len(ledger) >= STILL_THERE_REBUTTAL_THRESHOLD
            if rebuttal:
                changes["cleared_confirmations"] = []
                changes["resolved"] = False

            updated = self.store.update(report_id, changes)
        except StoreIOError as e:
            logger.error(f"Still-there vote on {report_id} failed: {e}")
            return VoteResult.rejected("store_error")

        if updated is None:
            return VoteResult.rejected("not_found")

        if rebuttal:
            logger.info(
                f"Report {report_id} rebutted by {updated.still_there_count} still-there votes "
                f"({report.cleared_count} cleared votes reset)"
            )

        return VoteResult(success=True, report=updated)

    # ------------------------------------------------------------------
    # Administrative overrides
    # ------------------------------------------------------------------

    def bulk_mark_resolved(self, report_ids: Iterable[str]) -> int:
        """
        Resolve reports unconditionally, bypassing the vote threshold.

        Args:
            report_ids: Reports to resolve

        Returns:
            Number of reports updated
        """
        ids = list(report_ids)
        if not ids:
            return 0

        try:
            updated = self.store.update_many(ids, {"resolved": True})
        except StoreIOError as e:
            logger.error(f"Bulk resolve of {len(ids)} reports failed: {e}")
            return 0

        logger.info(f"Marked {len(updated)} reports resolved by operator")
        return len(updated)

    def set_resolved(self, report_id: str, resolved: bool) -> bool:
        """
        Set the resolution state of one report directly.

        Returns:
            True if the report exists and was updated
        """
        try:
            updated = self.store.update(report_id, {"resolved": resolved})
        except StoreIOError as e:
            logger.error(f"Setting resolved on {report_id} failed: {e}")
            return False

        if updated is None:
            return False

        logger.info(f"Report {report_id} resolved={resolved} by operator")
        return True

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def toggle_flagged(self, report_id: str) -> Optional[bool]:
        """Flip the flagged marker. Returns the new value, or None if missing."""
        return self._toggle(report_id, "flagged")

    def toggle_no_glass_found(self, report_id: str) -> Optional[bool]:
        """Flip the no-glass-found marker. Returns the new value, or None if missing."""
        return self._toggle(report_id, "no_glass_found")

    def _toggle(self, report_id: str, field_name: str) -> Optional[bool]:
        try:
            report = self.store.get(report_id)
            if report is None:
                return None
            value = not getattr(report, field_name)
            self.store.update(report_id, {field_name: value})
        except StoreIOError as e:
            logger.error(f"Toggling {field_name} on {report_id} failed: {e}")
            return None

        return value

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def archive(self, report_id: str) -> bool:
        """Archive a report, hiding it from active views and proximity alerts."""
        try:
            updated = self.store.update(report_id, {"archived": True, "archived_at": self.clock()})
        except StoreIOError as e:
            logger.error(f"Archiving {report_id} failed: {e}")
            return False
        return updated is not None

    def unarchive(self, report_id: str) -> bool:
        """Return an archived report to the active set."""
        try:
            updated = self.store.update(report_id, {"archived": False, "archived_at": None})
        except StoreIOError as e:
            logger.error(f"Unarchiving {report_id} failed: {e}")
            return False
        return updated is not None

    def auto_archive_resolved(self) -> int:
        """
        Archive resolved reports untouched for more than seven days.

        Idempotent: a second run finds nothing left to archive.

        Returns:
            Number of reports archived
        """
        now = self.clock()
        cutoff = now - AUTO_ARCHIVE_AFTER_MS

        try:
            stale = [
                report.id for report in self.store.get_all()
                if report.resolved and not report.archived and report.last_modified < cutoff
            ]
            if not stale:
                return 0
            archived = self.store.update_many(stale, {"archived": True, "archived_at": now})
        except StoreIOError as e:
            logger.error(f"Auto-archive sweep failed: {e}")
            return 0

        logger.info(f"Auto-archived {len(archived)} old resolved reports")
        return len(archived)
