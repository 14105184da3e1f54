"""SQLAlchemy declarative base and model imports for Alembic."""
from betre.db.session import Base  # noqa: F401
from betre.models.user import User  # noqa: F401
from betre.models.post import Post  # noqa: F401
from betre.models.comment import Comment  # noqa: F401
from betre.models.engagement import FeedEntry, Follow, Like  # noqa: F401
from betre.models.moderation import ModerationWarning, Report  # noqa: F401
from betre.models.notification import Notification  # noqa: F401

__all__ = ["Base", "User", "Post", "Comment", "Follow", "Like", "FeedEntry", "Report", "ModerationWarning", "Notification"]
