"""
Haptic feedback sinks.
"""

import logging
from typing import List, Protocol, Sequence, Tuple

logger = logging.getLogger(__name__)


class HapticSink(Protocol):
    """Plays a vibration pattern of alternating on/off durations in ms."""

    def vibrate(self, pattern: Sequence[int]) -> None:
        ...


class LoggingHapticSink:
    """Haptic sink for hosts without a vibration motor."""

    def vibrate(self, pattern: Sequence[int]) -> None:
        logger.info(f"Vibrate {list(pattern)}")


class MockHapticSink:
    """Mock haptic sink for testing."""

    def __init__(self):
        self.patterns: List[Tuple[int, ...]] = []

    def vibrate(self, pattern: Sequence[int]) -> None:
        self.patterns.append(tuple(pattern))
