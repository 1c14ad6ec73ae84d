import logging
import uuid
from typing import List, Optional

from sqlalchemy import select

from database.models import InAppNotification, NotificationPreferences, NotificationTracker
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository):
    def get_or_create_preferences(
        self,
        student_id: str,
        default_min_match_threshold: float = 75.0
    ) -> NotificationPreferences:
        stmt = select(NotificationPreferences).where(NotificationPreferences.student_id == student_id)
        prefs = self.db.execute(stmt).scalar_one_or_none()
        if prefs is None:
            prefs = NotificationPreferences(
                student_id=student_id,
                frequency='DAILY',
                min_match_threshold=default_min_match_threshold,
                email_enabled=True,
                in_app_enabled=True,
            )
            self.db.add(prefs)
            self.db.flush()
            logger.info(f"Created default notification preferences for student {student_id}")
        return prefs

    def create_in_app_notification(
        self,
        student_id: str,
        title: str,
        message: str,
        scholarship_id: Optional[str] = None,
        match_score: Optional[float] = None,
        priority_tier: Optional[str] = None,
        notification_type: str = 'NEW_MATCH'
    ) -> InAppNotification:
        notification = InAppNotification(
            student_id=student_id,
            scholarship_id=scholarship_id,
            type=notification_type,
            title=title,
            message=message,
            match_score=match_score,
            priority_tier=priority_tier,
            read=False,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def get_in_app_notifications(self, student_id: str, unread_only: bool = False) -> List[InAppNotification]:
        stmt = select(InAppNotification).where(InAppNotification.student_id == student_id)
        if unread_only:
            stmt = stmt.where(InAppNotification.read.is_(False))
        stmt = stmt.order_by(InAppNotification.created_at.desc())
        return self.db.execute(stmt).scalars().all()

    def get_tracker_by_hash(self, dedup_hash: str) -> Optional[NotificationTracker]:
        stmt = select(NotificationTracker).where(NotificationTracker.dedup_hash == dedup_hash)
        return self.db.execute(stmt).scalar_one_or_none()

    def add_tracker(self, tracker: NotificationTracker) -> None:
        self.db.add(tracker)

    def get_trackers_for_match(self, match_id: uuid.UUID) -> List[NotificationTracker]:
        stmt = select(NotificationTracker).where(NotificationTracker.match_id == match_id)
        return self.db.execute(stmt).scalars().all()
