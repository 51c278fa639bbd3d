"""
Temporarily ignored report ids, e.g. a device's own just-submitted report.
"""

import logging
from typing import Dict, Set

from pawsafe.core.constants import SELF_REPORT_SUPPRESS_MS

logger = logging.getLogger(__name__)


class SuppressionList:
    """
    Report ids excluded from proximity alerts until an expiry time.

    Expired entries are purged lazily whenever the list is read.
    """

    def __init__(self, ttl_ms: int = SELF_REPORT_SUPPRESS_MS):
        self.ttl_ms = ttl_ms
        self._expires_at: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._expires_at)

    def suppress(self, report_id: str, now: int) -> int:
        """
        Suppress a report for the configured TTL.

        Returns:
            Expiry time in epoch ms
        """
        expires_at = now + self.ttl_ms
        self._expires_at[report_id] = expires_at
        logger.debug(f"Suppressing proximity alerts for {report_id} until {expires_at}")
        return expires_at

    def is_suppressed(self, report_id: str, now: int) -> bool:
        return report_id in self.active_ids(now)

    def active_ids(self, now: int) -> Set[str]:
        """Ids still suppressed at ``now``."""
        expired = [rid for rid, expires_at in self._expires_at.items() if expires_at <= now]
        for report_id in expired:
            del self._expires_at[report_id]
        return set(self._expires_at)

    def clear(self) -> None:
        self._expires_at.clear()
