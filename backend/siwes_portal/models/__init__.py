# Re-export all models for convenient imports
from siwes_portal.models.user import User, UserRole
from siwes_portal.models.student import Student
from siwes_portal.models.attendance import Attendance
from siwes_portal.models.logbook import LogbookEntry, ReviewStatus
from siwes_portal.models.notification import (
    Notification,
    NotificationType,
    RecipientType,
    UserNotification,
)
from siwes_portal.models.blacklisted_token import BlacklistedToken
from siwes_portal.models.itf_form import ITFForm

__all__ = [
    # Users
    "User",
    "UserRole",
    "Student",
    # Records
    "Attendance",
    "LogbookEntry",
    "ReviewStatus",
    # Notifications
    "Notification",
    "NotificationType",
    "RecipientType",
    "UserNotification",
    # Auth / documents
    "BlacklistedToken",
    "ITFForm",
]
