"""User roles and moderation-related enumerations."""
from enum import Enum


class Role(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUSPENDED = "suspended"


STAFF_ROLES = frozenset({Role.MODERATOR, Role.ADMIN})
ADMIN_ROLES = frozenset({Role.ADMIN})
# Roles an admin may assign directly; suspension goes through suspend/unsuspend.
ASSIGNABLE_ROLES = frozenset({Role.USER, Role.MODERATOR})


class ReportTargetKind(str, Enum):
    POST = "post"
    COMMENT = "comment"
    PROFILE = "profile"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"


class NotificationType(str, Enum):
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    LIKE = "like"
    COMMENT = "comment"
    REPORT = "report"
