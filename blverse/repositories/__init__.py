# blverse/repositories/__init__.py
"""
Repository layer.

Repositories encapsulate queries and never commit; services decide
transaction boundaries.
"""

from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository
from .engagement_repository import ENGAGEMENT_KINDS, EngagementKind, EngagementRepository
from .message_repository import MessageRepository
from .notification_repository import NotificationRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "ENGAGEMENT_KINDS",
    "EngagementKind",
    "EngagementRepository",
    "MessageRepository",
    "NotificationRepository",
    "UserRepository",
]
