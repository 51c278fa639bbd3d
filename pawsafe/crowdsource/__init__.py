"""
PawSafe - Crowdsource Module
Hazard reports, crowd voting and moderation.
"""

from pawsafe.crowdsource.report import (
    Confirmation,
    HazardReport,
    SyncStatus,
)
from pawsafe.crowdsource.report_handler import ReportHandler
from pawsafe.crowdsource.consensus import (
    ConsensusEngine,
    VoteResult,
)

__all__ = [
    # Report
    "Confirmation",
    "HazardReport",
    "SyncStatus",
    # Report Handler
    "ReportHandler",
    # Consensus
    "ConsensusEngine",
    "VoteResult",
]
