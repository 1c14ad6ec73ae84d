#!/usr/bin/env python3
"""
Notification Service with Deduplication

Orchestrates match notifications using:
- Per-student NotificationPreferences (threshold, frequency, channel opt-outs)
- NotificationChannel implementations via NotificationChannelFactory
- NotificationTrackerService for deduplication
- Redis Queue for async processing, with a synchronous fallback

Usage:
    from notification.service import NotificationService, PendingNotification

    service = NotificationService(base_url="https://app.example.com")
    service.notify_new_match(PendingNotification(...))
"""

import os
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Tuple

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Retry

from core.config_loader import NotificationChannelConfig
from core.eligibility.models import ScholarshipRecord
from core.scorer.models import PriorityTier
from database.uow import matching_uow
from notification.channels import NotificationChannelFactory
from notification.tracker import (
    NotificationTrackerService,
    DeduplicationStrategy,
    DefaultDeduplicationStrategy,
)
from notification.message_builder import NotificationMessageBuilder

logger = logging.getLogger(__name__)

NEW_MATCH_EVENT = "new_match"
DEFAULT_CHANNELS = ('email', 'in_app')


def _event_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Metadata minus rendered content, as tracked for deduplication."""
    return {k: v for k, v in (metadata or {}).items() if k != 'html_body'}


class NotificationDeliveryError(Exception):
    """A single channel failed to deliver a notification."""


class NotificationDispatchError(Exception):
    """A match notification failed on at least one attempted channel."""


@dataclass
class PendingNotification:
    """A scored match whose tier qualifies for a notification."""
    student_id: str
    scholarship: ScholarshipRecord
    match_id: uuid.UUID
    match_score: float
    priority_tier: PriorityTier
    student_email: Optional[str] = None
    student_first_name: Optional[str] = None
    notification_round: int = 0


class NotificationService:
    """
    Main notification service with deduplication.

    This service coordinates:
    1. Preference checks (threshold, frequency, per-channel opt-out)
    2. Deduplication checking (via NotificationTrackerService)
    3. Channel selection (via NotificationChannelFactory)
    4. Queueing for async processing (via RQ)
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        base_url: Optional[str] = None,
        use_async_queue: bool = True,
        channels: Optional[Dict[str, NotificationChannelConfig]] = None,
        skip_dedup: bool = False,
        default_min_match_threshold: float = 75.0,
        dedup_strategy: Optional[DeduplicationStrategy] = None
    ):
        """
        Initialize notification service.

        Args:
            redis_url: Redis connection URL
            base_url: Base URL for links in notifications (injected from config)
            use_async_queue: Whether to use async queue or sync mode
            channels: Channel configuration keyed by channel type
            skip_dedup: If True, disable deduplication (for testing)
            default_min_match_threshold: Threshold for students without stored preferences
            dedup_strategy: Deduplication strategy for the tracker
        """
        self.skip_dedup = skip_dedup
        self.default_min_match_threshold = default_min_match_threshold
        self.dedup_strategy = dedup_strategy or DefaultDeduplicationStrategy()

        if channels:
            self.channels = dict(channels)
        else:
            self.channels = {name: NotificationChannelConfig() for name in DEFAULT_CHANNELS}

        self.redis_url = redis_url or os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
        self.base_url = base_url or os.environ.get('BASE_URL', 'http://localhost:3000')

        self.redis_conn = None
        self.queue = None
        self.async_mode = False

        if not use_async_queue:
            logger.info("Async queue disabled via config. Using sync mode.")
            return

        try:
            self.redis_conn = Redis.from_url(self.redis_url)
            self.redis_conn.ping()
            self.queue = Queue('notifications', connection=self.redis_conn)
            self.async_mode = True
            logger.info("Notification service connected to Redis")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}. Falling back to sync mode.")
            self.redis_conn = None
            self.queue = None

    def send_notification(
        self,
        channel_type: str,
        recipient: str,
        subject: str,
        body: str,
        student_id: str,
        match_id: Optional[uuid.UUID] = None,
        event_type: str = NEW_MATCH_EVENT,
        metadata: Optional[Dict[str, Any]] = None,
        notification_round: int = 0
    ) -> Optional[str]:
        """
        Send a notification with deduplication check.

        Returns:
            Notification ID if sent/queued, None if suppressed as duplicate

        Raises:
            NotificationDeliveryError: synchronous delivery failed
        """
        if not self.skip_dedup:
            with matching_uow() as repo:
                tracker = NotificationTrackerService(repo.notifications, self.dedup_strategy)
                should_send = tracker.should_send_notification(
                    student_id=student_id,
                    match_id=match_id,
                    event_type=event_type,
                    channel_type=channel_type,
                    subject=subject,
                    body=body,
                    metadata=_event_metadata(metadata),
                    notification_round=notification_round
                )

            if not should_send:
                return None

        notification_data = {
            'channel_type': channel_type,
            'recipient': recipient,
            'subject': subject,
            'body': body,
            'metadata': metadata or {},
            'student_id': student_id,
            'match_id': match_id,
            'event_type': event_type,
            'notification_round': notification_round,
            'dedup_strategy': self.dedup_strategy,
        }

        if self.async_mode:
            retry_policy = Retry(max=3, interval=[30, 60, 120])
            job = self.queue.enqueue(
                process_notification_task,
                notification_data,
                job_timeout='5m',
                result_ttl=86400,
                retry=retry_policy
            )
            logger.info(f"Queued {channel_type} notification as job {job.id}")
            return job.id

        return process_notification_task(notification_data)

    def get_preferences(self, student_id: str) -> Tuple[str, float, bool, bool]:
        """Return (frequency, min_match_threshold, email_enabled, in_app_enabled)."""
        with matching_uow() as repo:
            prefs = repo.notifications.get_or_create_preferences(
                student_id, self.default_min_match_threshold
            )
            return (
                prefs.frequency,
                prefs.min_match_threshold,
                prefs.email_enabled,
                prefs.in_app_enabled,
            )

    def _channel_enabled(self, channel: str) -> bool:
        channel_config = self.channels.get(channel)
        return channel_config is not None and channel_config.enabled

    def _resolve_targets(
        self,
        pending: PendingNotification,
        email_enabled: bool,
        in_app_enabled: bool
    ) -> List[Tuple[str, str]]:
        """Pair each enabled channel with its recipient for this student."""
        targets = []
        if email_enabled and self._channel_enabled('email'):
            recipient = self.channels['email'].recipient or pending.student_email
            if recipient:
                targets.append(('email', recipient))
            else:
                logger.warning(f"No email address for student {pending.student_id}, skipping email")
        if in_app_enabled and self._channel_enabled('in_app'):
            targets.append(('in_app', pending.student_id))

        for channel, channel_config in self.channels.items():
            if channel in ('email', 'in_app') or not channel_config.enabled:
                continue
            if channel_config.recipient:
                targets.append((channel, channel_config.recipient))
            else:
                logger.warning(f"Channel {channel} has no recipient configured, skipping")
        return targets

    def notify_new_match(self, pending: PendingNotification) -> Dict[str, Optional[str]]:
        """
        Notify a student about a newly qualifying match on every enabled channel.

        Returns:
            Dict mapping channel names to notification IDs, None for a channel
            whose notification was already delivered; empty when the
            student's preferences suppress the notification

        Raises:
            NotificationDispatchError: any attempted channel failed. Channels
                that did deliver are recorded by the tracker and suppressed when
                the notification is dispatched again.
        """
        frequency, threshold, email_enabled, in_app_enabled = self.get_preferences(pending.student_id)

        if frequency == 'NEVER':
            logger.info(f"Student {pending.student_id} has notifications disabled")
            return {}
        if pending.match_score < threshold:
            logger.info(
                f"Match score {pending.match_score:.1f} below threshold {threshold:.1f} "
                f"for student {pending.student_id}"
            )
            return {}

        content = NotificationMessageBuilder.build_notification_content(
            student_id=pending.student_id,
            student_name=pending.student_first_name,
            scholarship=pending.scholarship,
            match_score=pending.match_score,
            priority_tier=pending.priority_tier,
            base_url=self.base_url,
            match_id=str(pending.match_id),
        )
        subject = NotificationMessageBuilder.build_subject(content)
        body = NotificationMessageBuilder.build_text_body(content)

        metadata = {
            'student_id': pending.student_id,
            'scholarship_id': pending.scholarship.id,
            'match_id': str(pending.match_id),
            'score': pending.match_score,
            'priority_tier': pending.priority_tier.value,
            'summary': (
                f"{content.scholarship.name} is a {content.match.match_score}% match. "
                f"Award: {NotificationMessageBuilder.format_award(content.scholarship.award_amount)}"
            ),
        }

        results: Dict[str, Optional[str]] = {}
        failed: List[str] = []

        for channel, recipient in self._resolve_targets(pending, email_enabled, in_app_enabled):
            channel_metadata = dict(metadata)
            if channel == 'email':
                channel_metadata['html_body'] = NotificationMessageBuilder.build_html_body(content)
            try:
                results[channel] = self.send_notification(
                    channel_type=channel,
                    recipient=recipient,
                    subject=subject,
                    body=body,
                    student_id=pending.student_id,
                    match_id=pending.match_id,
                    event_type=NEW_MATCH_EVENT,
                    metadata=channel_metadata,
                    notification_round=pending.notification_round
                )
            except (NotificationDeliveryError, ValueError, RedisError) as e:
                logger.error(f"Failed to send {channel} notification for match {pending.match_id}: {e}")
                results[channel] = None
                failed.append(channel)

        if failed:
            raise NotificationDispatchError(
                f"Delivery failed for match {pending.match_id} on: {', '.join(failed)}"
            )

        return results


# Worker task - must be at module level for RQ
def process_notification_task(notification_data: Dict[str, Any]) -> str:
    """
    Deliver one notification and record the attempt in the tracker.

    Raises NotificationDeliveryError on failure so RQ retries the job and
    the synchronous caller counts it.
    """
    notification_id = str(uuid.uuid4())

    channel_type = notification_data['channel_type']
    recipient = notification_data['recipient']
    subject = notification_data['subject']
    body = notification_data['body']
    metadata = notification_data.get('metadata', {})
    student_id = notification_data['student_id']
    match_id = notification_data.get('match_id')
    event_type = notification_data['event_type']
    notification_round = notification_data.get('notification_round', 0)
    strategy = notification_data.get('dedup_strategy')

    logger.info(f"Processing notification {notification_id} via {channel_type}")

    error_message = None
    try:
        channel = NotificationChannelFactory.get_channel(channel_type)
        success = channel.send(recipient, subject, body, metadata)
        if not success:
            error_message = "Send failed"
    except Exception as e:
        logger.error(f"Failed to process notification {notification_id}: {e}", exc_info=True)
        success = False
        error_message = str(e)

    with matching_uow() as repo:
        tracker = NotificationTrackerService(repo.notifications, strategy)
        tracker.record_notification(
            student_id=student_id,
            match_id=match_id,
            event_type=event_type,
            channel_type=channel_type,
            recipient=recipient,
            subject=subject,
            body=body,
            success=success,
            error_message=error_message,
            metadata=_event_metadata(metadata),
            notification_round=notification_round
        )

    if not success:
        raise NotificationDeliveryError(f"{channel_type} delivery failed: {error_message}")

    logger.info(f"Notification {notification_id} sent successfully")
    return notification_id
