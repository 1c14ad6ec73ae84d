from database.repositories.base import BaseRepository
from database.repositories.student import StudentRepository
from database.repositories.scholarship import ScholarshipRepository
from database.repositories.match import MatchRepository, UpsertOutcome
from database.repositories.notification import NotificationRepository

__all__ = [
    'BaseRepository',
    'StudentRepository',
    'ScholarshipRepository',
    'MatchRepository',
    'UpsertOutcome',
    'NotificationRepository',
]
