# blverse/models/__init__.py
"""
SQLAlchemy models.

Importing this package registers every mapper on ``Base.metadata``.
"""

from .conversation import Conversation
from .engagement import (
    CommunityPost,
    PostComment,
    PostCommentLike,
    PostLike,
    Story,
    StoryFavorite,
    StoryLike,
    Work,
    WorkBookmark,
    WorkComment,
    WorkCommentLike,
    WorkHit,
    WorkKudos,
)
from .message import Message, MessageDelivery, MessageReaction, MessageRead, MessageType
from .notification import Notification
from .user import User

__all__ = [
    "CommunityPost",
    "Conversation",
    "Message",
    "MessageDelivery",
    "MessageReaction",
    "MessageRead",
    "MessageType",
    "Notification",
    "PostComment",
    "PostCommentLike",
    "PostLike",
    "Story",
    "StoryFavorite",
    "StoryLike",
    "User",
    "Work",
    "WorkBookmark",
    "WorkComment",
    "WorkCommentLike",
    "WorkHit",
    "WorkKudos",
]
