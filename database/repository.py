import logging

from sqlalchemy.orm import Session

from database.repositories import (
    MatchRepository,
    NotificationRepository,
    ScholarshipRepository,
    StudentRepository,
)

logger = logging.getLogger(__name__)


class MatchingRepository:
    """Session-scoped facade over the per-aggregate repositories."""

    def __init__(self, db: Session):
        self.db = db
        self.students = StudentRepository(db)
        self.scholarships = ScholarshipRepository(db)
        self.matches = MatchRepository(db)
        self.notifications = NotificationRepository(db)
