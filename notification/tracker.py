#!/usr/bin/env python3
"""
Notification Tracker - Deduplication Service

Keeps one record per (student, match, round, event, channel) so that a
qualifying match is delivered once per channel, while a failed attempt stays
eligible for retry on the next run. The round is the match's
notification_round: it moves on when a notified match drops out of the
notifying tiers, so a later re-qualification is tracked as a new event.

Usage:
    from notification.tracker import NotificationTrackerService

    with matching_uow() as repo:
        tracker = NotificationTrackerService(repo.notifications)
        if tracker.should_send_notification(
            student_id="stu_1",
            match_id=match_id,
            event_type="new_match",
            channel_type="email"
        ):
            ...
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from dataclasses import dataclass
from abc import ABC, abstractmethod

from database.models import NotificationTracker
from database.repositories.notification import NotificationRepository

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """Represents a notification event for tracking."""
    student_id: str
    match_id: Optional[str]
    event_type: str  # e.g., "new_match"
    channel_type: str  # e.g., "email", "in_app"
    content_hash: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class DeduplicationStrategy(ABC):
    """
    Abstract strategy for deduplication logic.
    """

    @abstractmethod
    def should_allow_notification(
        self,
        existing_notification: Optional[NotificationTracker],
        new_event: NotificationEvent
    ) -> bool:
        """
        Determine if notification should be allowed.

        Args:
            existing_notification: Previous notification record (if any)
            new_event: New notification event

        Returns:
            True if notification should be sent, False otherwise
        """
        pass


class DefaultDeduplicationStrategy(DeduplicationStrategy):
    """
    Default deduplication strategy.

    - Retry anything that was never delivered successfully
    - Never resend identical content
    - Allow a resend when the content changed (e.g. re-qualified with a new score)
    """

    def should_allow_notification(
        self,
        existing_notification: Optional[NotificationTracker],
        new_event: NotificationEvent
    ) -> bool:
        if not existing_notification:
            return True

        if not existing_notification.sent_successfully:
            return True

        if new_event.content_hash and existing_notification.content_hash:
            if new_event.content_hash != existing_notification.content_hash:
                logger.info("Content changed, allowing resend")
                return True

        return False


class NotificationTrackerService:
    """
    Service for tracking and deduplicating notifications.
    """

    def __init__(
        self,
        repo: NotificationRepository,
        strategy: Optional[DeduplicationStrategy] = None
    ):
        """
        Initialize tracker.

        Args:
            repo: Notification repository bound to the current unit of work
            strategy: Deduplication strategy (defaults to DefaultDeduplicationStrategy)
        """
        self.repo = repo
        self.strategy = strategy or DefaultDeduplicationStrategy()

    def generate_dedup_hash(
        self,
        student_id: str,
        match_id: Optional[str],
        event_type: str,
        channel_type: str,
        notification_round: int = 0
    ) -> str:
        """
        Generate deduplication hash for an event.
        """
        key = f"{student_id}:{match_id}:{notification_round}:{event_type}:{channel_type}"
        return hashlib.sha256(key.encode('utf-8')).hexdigest()[:32]

    def generate_content_hash(
        self,
        subject: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Generate hash of notification content.

        The rendered body is left out: it carries relative dates that change
        from day to day for the same match.
        """
        content = {
            'subject': subject,
            'metadata': json.dumps(metadata, sort_keys=True, default=str) if metadata else None
        }
        normalized = json.dumps(content, sort_keys=True)
        return hashlib.sha256(normalized.encode('utf-8')).hexdigest()[:16]

    def should_send_notification(
        self,
        student_id: str,
        match_id: Optional[str],
        event_type: str,
        channel_type: str,
        subject: str = "",
        body: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        notification_round: int = 0
    ) -> bool:
        """
        Check if a notification should be sent (not a duplicate).

        Returns:
            True if notification should be sent, False if duplicate
        """
        dedup_hash = self.generate_dedup_hash(
            student_id, match_id, event_type, channel_type, notification_round
        )
        existing = self.repo.get_tracker_by_hash(dedup_hash)

        if not existing:
            return True

        event = NotificationEvent(
            student_id=student_id,
            match_id=match_id,
            event_type=event_type,
            channel_type=channel_type,
            content_hash=self.generate_content_hash(subject, metadata),
            metadata=metadata
        )

        should_send = self.strategy.should_allow_notification(existing, event)
        if not should_send:
            logger.info(f"Suppressing duplicate notification: {event_type} for {student_id} via {channel_type}")
        return should_send

    def record_notification(
        self,
        student_id: str,
        match_id: Optional[str],
        event_type: str,
        channel_type: str,
        recipient: str,
        subject: str,
        body: str,
        success: bool,
        error_message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        notification_round: int = 0
    ) -> NotificationTracker:
        """
        Record a delivery attempt. The caller's unit of work commits it.
        """
        dedup_hash = self.generate_dedup_hash(
            student_id, match_id, event_type, channel_type, notification_round
        )
        content_hash = self.generate_content_hash(subject, metadata)

        existing = self.repo.get_tracker_by_hash(dedup_hash)

        if existing:
            existing.last_sent_at = datetime.now(timezone.utc)
            existing.send_count = (existing.send_count or 0) + 1
            existing.content_hash = content_hash
            existing.sent_successfully = success
            existing.error_message = error_message
            tracker = existing
            logger.info(f"Updated notification record (send count: {tracker.send_count})")
        else:
            tracker = NotificationTracker(
                student_id=student_id,
                match_id=match_id,
                notification_type=event_type,
                channel_type=channel_type,
                dedup_hash=dedup_hash,
                content_hash=content_hash,
                event_type=event_type,
                event_data=metadata or {},
                recipient=recipient,
                subject=subject,
                sent_successfully=success,
                error_message=error_message,
                notification_round=notification_round,
            )
            self.repo.add_tracker(tracker)
            logger.info(f"Created new notification record for {event_type}")

        return tracker
