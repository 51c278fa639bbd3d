"""
PawSafe - Proximity Module
Geofencing alerts when the user approaches an unresolved hazard.
"""

from pawsafe.proximity.location import (
    LocationError,
    LocationFix,
    LocationSource,
    QueueLocationSource,
)
from pawsafe.proximity.suppression import SuppressionList
from pawsafe.proximity.detector import (
    DetectorState,
    ProximityDetector,
    ProximityEvent,
    ProximityEventType,
    WatchHandle,
)

__all__ = [
    # Location
    "LocationError",
    "LocationFix",
    "LocationSource",
    "QueueLocationSource",
    # Suppression
    "SuppressionList",
    # Detector
    "DetectorState",
    "ProximityDetector",
    "ProximityEvent",
    "ProximityEventType",
    "WatchHandle",
]
