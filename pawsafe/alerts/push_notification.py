"""
Local notification sinks for PawSafe
Proximity alerts are delivered to the device's own FCM token.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from pawsafe.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PushNotification:
    """Push notification data structure."""
    title: str
    body: str
    tag: Optional[str] = None
    data: Dict[str, str] = field(default_factory=dict)
    sent_at: Optional[datetime] = None
    message_id: Optional[str] = None
    status: str = "pending"


class NotificationSink(Protocol):
    """Shows a local notification. Must return without waiting on the network."""

    def notify(
        self,
        title: str,
        body: str,
        tag: Optional[str] = None,
        data: Optional[Dict[str, str]] = None
    ) -> None:
        ...


class FirebaseNotificationSink:
    """
    Notification sink using Firebase Cloud Messaging.

    Messages go to this device's own registration token. Sends run on a
    worker thread; failures are logged.
    """

    def __init__(
        self,
        token: str,
        credentials_path: Optional[str] = None,
        app_name: str = "pawsafe"
    ):
        """
        Initialize Firebase notification sink.

        Args:
            token: FCM registration token of this device
            credentials_path: Path to Firebase service account JSON
            app_name: Firebase app instance name
        """
        self.token = token
        self.credentials_path = credentials_path or settings.firebase_credentials_path

        try:
            self._app = firebase_admin.get_app(app_name)
        except ValueError:
            cred = credentials.Certificate(self.credentials_path)
            options = {"databaseURL": settings.firebase_database_url} if settings.firebase_database_url else None
            self._app = firebase_admin.initialize_app(cred, options, name=app_name)

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pawsafe-fcm")
        logger.info("Firebase notification sink initialized")

    def notify(
        self,
        title: str,
        body: str,
        tag: Optional[str] = None,
        data: Optional[Dict[str, str]] = None
    ) -> None:
        notification = PushNotification(title=title, body=body, tag=tag, data=data or {})
        future = self._executor.submit(self._send, notification)
        future.add_done_callback(self._log_failure)

    def _send(self, notification: PushNotification) -> PushNotification:
        message = messaging.Message(
            notification=messaging.Notification(
                title=notification.title,
                body=notification.body
            ),
            android=messaging.AndroidConfig(
                notification=messaging.AndroidNotification(tag=notification.tag)
            ),
            data={k: str(v) for k, v in notification.data.items()},
            token=self.token
        )

        notification.message_id = messaging.send(message, app=self._app)
        notification.status = "sent"
        notification.sent_at = datetime.now(timezone.utc)

        logger.info(f"Push sent to device: {notification.message_id}")
        return notification

    @staticmethod
    def _log_failure(future: Future) -> None:
        error = future.exception()
        if error is None:
            return
        if isinstance(error, (exceptions.FirebaseError, ValueError)):
            logger.error(f"Push send failed: {error}")
        else:
            logger.error(f"Push send failed unexpectedly: {error!r}")

    def close(self) -> None:
        self._executor.shutdown(wait=False)


class MockNotificationSink:
    """Mock notification sink for testing."""

    def __init__(self):
        self.sent_notifications: List[PushNotification] = []

    def notify(
        self,
        title: str,
        body: str,
        tag: Optional[str] = None,
        data: Optional[Dict[str, str]] = None
    ) -> None:
        """Mock notify."""
        notification = PushNotification(
            title=title,
            body=body,
            tag=tag,
            data=data or {},
            status="mock_sent",
            message_id=f"MOCK_{len(self.sent_notifications)}",
            sent_at=datetime.now(timezone.utc)
        )
        self.sent_notifications.append(notification)
        logger.info(f"[MOCK PUSH] {title}: {body}")


def get_notification_sink() -> NotificationSink:
    """Get notification sink instance."""
    if settings.device_push_token and settings.firebase_credentials_path:
        return FirebaseNotificationSink(settings.device_push_token)

    logger.warning("Firebase messaging not configured, using mock notification sink")
    return MockNotificationSink()
