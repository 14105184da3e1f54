from betre.models.user import User
from betre.models.post import Post
from betre.models.comment import Comment
from betre.models.engagement import FeedEntry, Follow, Like
from betre.models.moderation import ModerationWarning, Report
from betre.models.notification import Notification

__all__ = ["User", "Post", "Comment", "Follow", "Like", "FeedEntry", "Report", "ModerationWarning", "Notification"]
