"""
Remote wire format for hazard reports.

One document per report at ``<reports_path>/<id>``. Documents carry every
report field except local sync bookkeeping; ``updatedAt`` is assigned by
the server on each write and becomes the local ``last_modified`` on pull.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pawsafe.core.clock import now_ms, parse_iso, to_iso
from pawsafe.core.constants import SERVER_TIMESTAMP
from pawsafe.crowdsource.report import Confirmation, HazardReport, SyncStatus


class RemoteConfirmation(BaseModel):
    """Ledger entry as stored remotely."""
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    timestamp: str


class RemoteReport(BaseModel):
    """Hazard report document in the remote store."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    lat: float
    lng: float
    desc: Optional[str] = ""
    photo_base64: Optional[str] = Field(default=None, alias="photoBase64")
    photo_url: Optional[str] = Field(default=None, alias="photoUrl")
    date: str
    cleared_count: int = Field(default=0, alias="clearedCount")
    resolved: bool = False
    still_there_count: int = Field(default=0, alias="stillThereCount")
    still_there_confirmations: List[RemoteConfirmation] = Field(
        default_factory=list, alias="stillThereConfirmations"
    )
    cleared_confirmations: List[RemoteConfirmation] = Field(
        default_factory=list, alias="clearedConfirmations"
    )
    updated_at: Optional[Any] = Field(default=None, alias="updatedAt")
    archived: bool = False
    archived_at: Optional[int] = Field(default=None, alias="archivedAt")
    flagged: bool = False
    no_glass_found: bool = Field(default=False, alias="noGlassFound")

    @field_validator("still_there_confirmations", "cleared_confirmations", mode="before")
    @classmethod
    def _ledger_as_list(cls, value: Any) -> Any:
        # Realtime Database returns arrays as {"0": ..., "1": ...} when sparse
        if value is None:
            return []
        if isinstance(value, dict):
            return [value[key] for key in sorted(value, key=lambda k: int(k))]
        return value


def _ledger_to_remote(ledger: List[Confirmation]) -> List[Dict[str, str]]:
    return [c.to_dict() for c in ledger]


def _ledger_from_remote(ledger: List[RemoteConfirmation]) -> List[Confirmation]:
    return [Confirmation(entry.device_id, parse_iso(entry.timestamp)) for entry in ledger]


def to_remote(report: HazardReport) -> Dict[str, Any]:
    """
    Build the full document written for a report.

    Optional fields are omitted rather than written as null.
    """
    document: Dict[str, Any] = {
        "id": report.id,
        "lat": report.lat,
        "lng": report.lng,
        "desc": report.description or "",
        "date": to_iso(report.created_at),
        "clearedCount": report.cleared_count,
        "resolved": report.resolved,
        "stillThereCount": report.still_there_count,
        "stillThereConfirmations": _ledger_to_remote(report.still_there_confirmations),
        "clearedConfirmations": _ledger_to_remote(report.cleared_confirmations),
        "updatedAt": dict(SERVER_TIMESTAMP),
        "archived": report.archived,
        "flagged": report.flagged,
        "noGlassFound": report.no_glass_found,
    }

    if report.photo_base64:
        document["photoBase64"] = report.photo_base64
    if report.photo_url:
        document["photoUrl"] = report.photo_url
    if report.archived_at:
        document["archivedAt"] = report.archived_at

    return document


def from_remote(data: Dict[str, Any], key: str) -> HazardReport:
    """
    Convert a remote document into a synced local report.

    Args:
        data: Document body
        key: Document key under the reports path

    Returns:
        HazardReport marked synced, ``remote_ref`` set to the key

    Raises:
        pydantic.ValidationError: The document is malformed
    """
    remote = RemoteReport.model_validate(data)
    updated_at = remote.updated_at
    if isinstance(updated_at, bool) or not isinstance(updated_at, (int, float)):
        updated_at = now_ms()

    return HazardReport(
        id=remote.id or key,
        lat=remote.lat,
        lng=remote.lng,
        description=remote.desc or "",
        created_at=parse_iso(remote.date),
        photo_base64=remote.photo_base64,
        photo_url=remote.photo_url,
        resolved=remote.resolved,
        cleared_confirmations=_ledger_from_remote(remote.cleared_confirmations),
        still_there_confirmations=_ledger_from_remote(remote.still_there_confirmations),
        flagged=remote.flagged,
        no_glass_found=remote.no_glass_found,
        archived=remote.archived,
        archived_at=remote.archived_at,
        sync_status=SyncStatus.SYNCED,
        last_modified=int(updated_at),
        remote_ref=key,
    )
