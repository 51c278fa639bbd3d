"""
Location fix stream consumed by the proximity detector.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationFix:
    """One position reading."""
    lat: float
    lng: float
    timestamp: int  # epoch ms


class LocationError(Exception):
    """The platform could not produce a fix (permission denied, unavailable, timeout)."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(f"{code}: {message}" if message else code)
        self.code = code
        self.message = message


class LocationSource(Protocol):
    """
    Stream of location fixes.

    ``next_fix()`` waits for the next reading and raises ``LocationError``
    when the platform reports a failure. It returns None once the stream
    has ended. ``close()`` releases the underlying watcher.
    """

    async def next_fix(self) -> Optional[LocationFix]:
        ...

    def close(self) -> None:
        ...


class QueueLocationSource:
    """
    Location source fed by ``push()``.

    Adapters for real platform watchers push fixes and errors into it;
    tests drive it directly.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Union[LocationFix, LocationError, None]]" = asyncio.Queue()
        self.closed = False

    def push(self, item: Union[LocationFix, LocationError]) -> None:
        if self.closed:
            logger.debug("Dropping location update for closed source")
            return
        self._queue.put_nowait(item)

    async def next_fix(self) -> Optional[LocationFix]:
        item = await self._queue.get()
        if isinstance(item, LocationError):
            raise item
        return item

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(None)
        logger.info("Location watch released")
