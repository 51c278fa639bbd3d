"""
PawSafe - Constants
Business rules and tuning values shared by the core components.
"""

from typing import Tuple

# =============================================================================
# TIME
# =============================================================================

SECOND_MS: int = 1000
MINUTE_MS: int = 60 * SECOND_MS
HOUR_MS: int = 60 * MINUTE_MS
DAY_MS: int = 24 * HOUR_MS

# =============================================================================
# CONSENSUS
# =============================================================================

# Distinct "cleared" confirmations needed to resolve a hazard
CLEARED_THRESHOLD: int = 3

# "Still there" confirmations that rebut (reset) clearing progress
STILL_THERE_REBUTTAL_THRESHOLD: int = 2

# A device may confirm "still there" again after this window
STILL_THERE_COOLDOWN_MS: int = 24 * HOUR_MS

# Resolved reports untouched for longer than this are archived
AUTO_ARCHIVE_AFTER_MS: int = 7 * DAY_MS

# =============================================================================
# PROXIMITY
# =============================================================================

# ~10 feet
ENTRY_RADIUS_METERS: float = 3.0

# ~20 feet, buffer to prevent flicker at the boundary
EXIT_RADIUS_METERS: float = 6.0

# Minimum spacing between processed location fixes
FIX_DEBOUNCE_MS: int = 1000

# Bound on waiting for the next location fix
FIX_TIMEOUT_SECONDS: float = 5.0

# Self-submitted reports do not alert their author for this long
SELF_REPORT_SUPPRESS_MS: int = 10 * MINUTE_MS

# Vibration pattern (on, off, on) in milliseconds
HAPTIC_PATTERN: Tuple[int, ...] = (200, 100, 200)

PROXIMITY_NOTIFICATION_TITLE: str = "PawSafe Alert"
PROXIMITY_NOTIFICATION_BODY: str = "Caution: Broken Glass Reported Ahead"
PROXIMITY_NOTIFICATION_TAG: str = "proximity-alert"

# =============================================================================
# STORAGE
# =============================================================================

REPORTS_TABLE: str = "reports"

# Latest schema version produced by the migrations package
SCHEMA_VERSION: int = 4

# Server-side timestamp placeholder understood by Firebase Realtime Database
SERVER_TIMESTAMP = {".sv": "timestamp"}
