import uuid

from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Boolean, Integer, Float, Uuid, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship

from .base import Base, JSONType


class NotificationTracker(Base):
    """
    Tracks sent notifications for deduplication.

    One row per (student, match, round, event, channel) dedup hash. A failed
    attempt is recorded too so the next run can retry it.
    """
    __tablename__ = 'notification_tracker'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # What was notified
    student_id = Column(Text, nullable=False, index=True)
    match_id = Column(Uuid(as_uuid=True), ForeignKey('match.id', ondelete='CASCADE'), nullable=True)
    notification_round = Column(Integer, nullable=False, default=0)
    notification_type = Column(Text, nullable=False)
    channel_type = Column(Text, nullable=False)  # email, in_app, webhook

    # Deduplication key - hash of student + match + round + event type + channel
    dedup_hash = Column(Text, nullable=False)

    # Notification content hash (to detect content changes)
    content_hash = Column(Text, nullable=True)

    event_type = Column(Text, nullable=False)  # new_match, ...
    event_data = Column(JSONType, default=dict)

    recipient = Column(Text, nullable=False)
    subject = Column(Text)
    sent_successfully = Column(Boolean, default=False)
    error_message = Column(Text, nullable=True)

    first_sent_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    last_sent_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    send_count = Column(Integer, default=1)

    match = relationship("Match")

    __table_args__ = (
        UniqueConstraint('dedup_hash', name='uq_notification_dedup'),
        Index('idx_notification_student', 'student_id', 'first_sent_at'),
    )


class NotificationPreferences(Base):
    """
    Per-student delivery preferences. Created with defaults the first
    time a student qualifies for a notification.
    """
    __tablename__ = 'notification_preferences'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Text, ForeignKey('student.id', ondelete='CASCADE'), nullable=False, unique=True)

    frequency = Column(Text, nullable=False, default='DAILY')  # REALTIME | DAILY | WEEKLY | NEVER
    min_match_threshold = Column(Float, nullable=False, default=75.0)
    email_enabled = Column(Boolean, nullable=False, default=True)
    in_app_enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class InAppNotification(Base):
    """
    Notification shown in the student's in-app inbox.
    """
    __tablename__ = 'in_app_notification'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Text, ForeignKey('student.id', ondelete='CASCADE'), nullable=False)
    scholarship_id = Column(Text, ForeignKey('scholarship.id', ondelete='CASCADE'), nullable=True)

    type = Column(Text, nullable=False, default='NEW_MATCH')
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    match_score = Column(Float)
    priority_tier = Column(Text)
    read = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index('idx_in_app_student_read', 'student_id', 'read'),
    )
