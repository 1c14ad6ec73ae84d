from .base import Base, JSONType
from .student import Student, Profile
from .scholarship import Scholarship
from .match import Match
from .notification import NotificationTracker, NotificationPreferences, InAppNotification

__all__ = [
    'Base',
    'JSONType',
    'Student',
    'Profile',
    'Scholarship',
    'Match',
    'NotificationTracker',
    'NotificationPreferences',
    'InAppNotification',
]
