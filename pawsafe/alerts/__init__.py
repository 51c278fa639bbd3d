"""
PawSafe - Alert Sinks
Local notification and haptic output for proximity alerts.
"""

from pawsafe.alerts.push_notification import (
    FirebaseNotificationSink,
    MockNotificationSink,
    NotificationSink,
    PushNotification,
    get_notification_sink,
)
from pawsafe.alerts.haptics import (
    HapticSink,
    LoggingHapticSink,
    MockHapticSink,
)

__all__ = [
    # Push Notifications
    "FirebaseNotificationSink",
    "MockNotificationSink",
    "NotificationSink",
    "PushNotification",
    "get_notification_sink",
    # Haptics
    "HapticSink",
    "LoggingHapticSink",
    "MockHapticSink",
]
