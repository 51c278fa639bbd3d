"""
Hazard report domain record.

A report is the single entity shared by the store, sync, consensus and
proximity components.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional

from pawsafe.core.clock import datetime_to_ms, parse_iso, to_iso


class SyncStatus(str, Enum):
    """Whether local state has been acknowledged by the remote store."""
    SYNCED = "synced"
    PENDING = "pending"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Confirmation:
    """One device-scoped vote in a ledger."""
    device_id: str
    timestamp: datetime

    @property
    def timestamp_ms(self) -> int:
        return datetime_to_ms(self.timestamp)

    def to_dict(self) -> Dict[str, str]:
        return {"deviceId": self.device_id, "timestamp": to_iso(self.timestamp)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Confirmation":
        return cls(
            device_id=str(data["deviceId"]),
            timestamp=parse_iso(str(data["timestamp"])),
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HazardReport:
    """
    Hazard reported at a location.

    Vote tallies are derived from the confirmation ledgers, never stored
    independently.
    """
    id: str
    lat: float
    lng: float

    # User content
    description: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    photo_base64: Optional[str] = None
    photo_url: Optional[str] = None

    # Consensus
    resolved: bool = False
    cleared_confirmations: List[Confirmation] = field(default_factory=list)
    still_there_confirmations: List[Confirmation] = field(default_factory=list)

    # Moderation
    flagged: bool = False
    no_glass_found: bool = False

    # Lifecycle
    archived: bool = False
    archived_at: Optional[int] = None

    # Sync bookkeeping
    sync_status: SyncStatus = SyncStatus.PENDING
    last_modified: int = 0
    remote_ref: Optional[str] = None

    IMMUTABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({
        "id", "lat", "lng", "description", "created_at",
        "photo_base64", "photo_url",
    })

    @property
    def cleared_count(self) -> int:
        return len(self.cleared_confirmations)

    @property
    def still_there_count(self) -> int:
        return len(self.still_there_confirmations)

    @property
    def is_active(self) -> bool:
        """Unresolved and not archived."""
        return not self.resolved and not self.archived

    @property
    def is_pending(self) -> bool:
        return self.sync_status == SyncStatus.PENDING

    def has_device_confirmed_cleared(self, device_id: str) -> bool:
        """Cleared votes are one per device, forever."""
        return any(c.device_id == device_id for c in self.cleared_confirmations)

    def has_device_confirmed_still_there_recently(
        self,
        device_id: str,
        now: int,
        window_ms: int
    ) -> bool:
        """Still-there votes are one per device per cooldown window."""
        cutoff = now - window_ms
        return any(
            c.device_id == device_id and c.timestamp_ms > cutoff
            for c in self.still_there_confirmations
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "lat": self.lat,
            "lng": self.lng,
            "description": self.description,
            "created_at": to_iso(self.created_at),
            "photo_base64": self.photo_base64,
            "photo_url": self.photo_url,
            "resolved": self.resolved,
            "cleared_count": self.cleared_count,
            "still_there_count": self.still_there_count,
            "cleared_confirmations": [c.to_dict() for c in self.cleared_confirmations],
            "still_there_confirmations": [c.to_dict() for c in self.still_there_confirmations],
            "flagged": self.flagged,
            "no_glass_found": self.no_glass_found,
            "archived": self.archived,
            "archived_at": self.archived_at,
            "sync_status": self.sync_status.value,
            "last_modified": self.last_modified,
            "remote_ref": self.remote_ref,
        }
