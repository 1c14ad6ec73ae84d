"""
Notification Module

Match notifications over multiple channels with per-student preferences,
deduplication, and async processing.

Usage:
    from notification import NotificationService, PendingNotification

    service = NotificationService(base_url="https://app.example.com", use_async_queue=False)
    service.notify_new_match(PendingNotification(...))

    channel = NotificationChannelFactory.get_channel('email')
    channel.send('student@example.com', 'Subject', 'Body', {})
"""

from notification.channels import (
    NotificationChannel,
    EmailChannel,
    WebhookChannel,
    InAppChannel,
    NotificationChannelFactory,
)

from notification.tracker import (
    NotificationTrackerService,
    NotificationEvent,
    DefaultDeduplicationStrategy,
)

from notification.message_builder import (
    NotificationMessageBuilder,
    MatchNotificationContent,
)

from notification.service import (
    NotificationService,
    PendingNotification,
    NotificationDeliveryError,
    NotificationDispatchError,
    process_notification_task,
)

__all__ = [
    # Channels
    'NotificationChannel',
    'EmailChannel',
    'WebhookChannel',
    'InAppChannel',
    'NotificationChannelFactory',
    # Tracker
    'NotificationTrackerService',
    'NotificationEvent',
    'DefaultDeduplicationStrategy',
    # Messages
    'NotificationMessageBuilder',
    'MatchNotificationContent',
    # Service
    'NotificationService',
    'PendingNotification',
    'NotificationDeliveryError',
    'NotificationDispatchError',
    'process_notification_task',
]
