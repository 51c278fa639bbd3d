"""
Remote authoritative store adapters.

The sync engine needs four primitives from the remote side: read a path,
subscribe to changes under a path, overwrite a document, delete a document.
``FirebaseRemoteStore`` provides them on top of the Firebase Realtime
Database; ``InMemoryRemoteStore`` is a process-local stand-in.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

import firebase_admin
from firebase_admin import credentials, db, exceptions
from google.auth import exceptions as auth_exceptions

from pawsafe.core.clock import Clock, now_ms
from pawsafe.core.constants import SERVER_TIMESTAMP
from pawsafe.core.exceptions import RemoteUnavailable

logger = logging.getLogger(__name__)

# Token refresh failures (offline device) surface as google-auth errors,
# not FirebaseError.
REMOTE_ERRORS = (
    exceptions.FirebaseError,
    auth_exceptions.GoogleAuthError,
    ValueError,
    OSError,
)


@dataclass
class RemoteChange:
    """Notification that data under a subscribed path changed."""
    path: str
    data: Any = None


ChangeCallback = Callable[[RemoteChange], None]


class RemoteSubscription:
    """
    Handle for a live remote subscription.

    ``close()`` releases the underlying listener; extra calls are no-ops.
    """

    def __init__(self, path: str, closer: Callable[[], None]):
        self.path = path
        self._closer = closer
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            logger.warning(f"Subscription to {self.path} already closed")
            return
        self._closed = True
        self._closer()
        logger.info(f"Unsubscribed from {self.path}")


class RemoteStore(Protocol):
    """Read/subscribe/write primitives of the remote store."""

    def get(self, path: str) -> Any:
        ...

    def subscribe(self, path: str, callback: ChangeCallback) -> RemoteSubscription:
        ...

    def set(self, path: str, document: Dict[str, Any]) -> str:
        ...

    def delete(self, path: str) -> None:
        ...


class FirebaseRemoteStore:
    """
    Remote store backed by the Firebase Realtime Database.

    Calls block on network I/O; the sync engine runs them in worker threads.
    Listener callbacks arrive on a Firebase-owned thread.
    """

    def __init__(
        self,
        credentials_path: str,
        database_url: str,
        app_name: str = "pawsafe"
    ):
        """
        Initialize Firebase Admin SDK.

        Args:
            credentials_path: Path to Firebase service account JSON
            database_url: Realtime Database URL
            app_name: Firebase app instance name
        """
        self.credentials_path = credentials_path
        self.database_url = database_url

        try:
            self._app = firebase_admin.get_app(app_name)
        except ValueError:
            cred = credentials.Certificate(credentials_path)
            self._app = firebase_admin.initialize_app(
                cred,
                {"databaseURL": database_url},
                name=app_name
            )

        logger.info(f"Firebase remote store initialized: {database_url}")

    def _ref(self, path: str) -> db.Reference:
        return db.reference(path, app=self._app)

    def get(self, path: str) -> Any:
        try:
            return self._ref(path).get()
        except REMOTE_ERRORS as e:
            raise RemoteUnavailable(f"Failed to read {path}: {e}", code=_error_code(e)) from e

    def subscribe(self, path: str, callback: ChangeCallback) -> RemoteSubscription:
        def _on_event(event: db.Event) -> None:
            callback(RemoteChange(path=event.path, data=event.data))

        try:
            registration = self._ref(path).listen(_on_event)
        except REMOTE_ERRORS as e:
            raise RemoteUnavailable(f"Failed to subscribe to {path}: {e}", code=_error_code(e)) from e

        logger.info(f"Subscribed to {path}")
        return RemoteSubscription(path, registration.close)

    def set(self, path: str, document: Dict[str, Any]) -> str:
        try:
            self._ref(path).set(document)
        except REMOTE_ERRORS as e:
            raise RemoteUnavailable(f"Failed to write {path}: {e}", code=_error_code(e)) from e
        return path.rstrip("/").rsplit("/", 1)[-1]

    def delete(self, path: str) -> None:
        try:
            self._ref(path).delete()
        except REMOTE_ERRORS as e:
            raise RemoteUnavailable(f"Failed to delete {path}: {e}", code=_error_code(e)) from e


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, exceptions.FirebaseError):
        return error.code
    if isinstance(error, (auth_exceptions.GoogleAuthError, OSError)):
        return "NETWORK_ERROR"
    return None


class InMemoryRemoteStore:
    """
    Remote store kept in process memory.

    Resolves server timestamps with its own clock and notifies subscribers
    synchronously on every write. ``available`` and ``failing_ids`` simulate
    outages and per-document write failures.
    """

    def __init__(self, clock: Clock = now_ms):
        self.clock = clock
        self.available = True
        self.failing_ids: Set[str] = set()
        self.writes: List[str] = []

        self._tree: Dict[str, Any] = {}
        self._subscribers: Dict[int, tuple] = {}
        self._next_token = 0
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _check_available(self, path: str) -> None:
        if not self.available:
            raise RemoteUnavailable(f"Remote store unreachable for {path}", code="NETWORK_ERROR")

    @staticmethod
    def _segments(path: str) -> List[str]:
        return [segment for segment in path.strip("/").split("/") if segment]

    def get(self, path: str) -> Any:
        self._check_available(path)
        with self._lock:
            node: Any = self._tree
            for segment in self._segments(path):
                if not isinstance(node, dict) or segment not in node:
                    return None
                node = node[segment]
            return copy.deepcopy(node)

    def subscribe(self, path: str, callback: ChangeCallback) -> RemoteSubscription:
        self._check_available(path)
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = (path, callback)
        return RemoteSubscription(path, lambda: self._subscribers.pop(token, None))

    def set(self, path: str, document: Dict[str, Any]) -> str:
        self._check_available(path)
        segments = self._segments(path)
        key = segments[-1]
        if key in self.failing_ids:
            raise RemoteUnavailable(f"Permission denied writing {path}", code="PERMISSION_DENIED")

        stored = {
            name: (self.clock() if value == SERVER_TIMESTAMP else copy.deepcopy(value))
            for name, value in document.items()
        }

        with self._lock:
            node = self._tree
            for segment in segments[:-1]:
                node = node.setdefault(segment, {})
            node[key] = stored
            self.writes.append(path)

        self._notify(path, stored)
        return key

    def delete(self, path: str) -> None:
        self._check_available(path)
        segments = self._segments(path)
        with self._lock:
            node: Any = self._tree
            for segment in segments[:-1]:
                node = node.get(segment, {})
            node.pop(segments[-1], None)
        self._notify(path, None)

    def _notify(self, path: str, data: Any) -> None:
        for subscribed_path, callback in list(self._subscribers.values()):
            if path.strip("/").startswith(subscribed_path.strip("/")):
                callback(RemoteChange(path=path, data=copy.deepcopy(data)))
