"""
PawSafe - Core Utilities
Central configuration, logging, errors, and utility functions.
"""

from pawsafe.core.config import settings
from pawsafe.core.exceptions import (
    PawSafeError,
    StoreIOError,
    RemoteUnavailable,
    MigrationFailure,
)
from pawsafe.core.geo_utils import (
    Point,
    BoundingBox,
    haversine_distance,
    distance_meters,
    destination_point,
)

__all__ = [
    "settings",
    "PawSafeError",
    "StoreIOError",
    "RemoteUnavailable",
    "MigrationFailure",
    "Point",
    "BoundingBox",
    "haversine_distance",
    "distance_meters",
    "destination_point",
]
