"""
In-app notification records for engagement events.

Notifications are polled by clients; they are written best-effort by the
services whose actions cause them.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON
import ulid

from ..database import Base

NOTIFICATION_TYPES = ("like", "comment", "reply", "mention", "profile_view", "kudos")
NOTIFICATION_ENTITY_TYPES = (
    "community_post",
    "community_comment",
    "profile",
    "story",
    "story_comment",
    "work",
    "work_comment",
)


def _in_clause(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{value}'" for value in values)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    recipient_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(String(26), nullable=True)
    url = Column(String(500), nullable=True)
    meta = Column(JSON, nullable=False, default=dict)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    actor = relationship("User", foreign_keys=[actor_id], lazy="joined")

    __table_args__ = (
        CheckConstraint(f"type IN ({_in_clause(NOTIFICATION_TYPES)})", name="ck_notifications_type"),
        CheckConstraint(
            f"entity_type IN ({_in_clause(NOTIFICATION_ENTITY_TYPES)})",
            name="ck_notifications_entity_type",
        ),
        Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
        Index("ix_notifications_recipient_read", "recipient_id", "read_at"),
        Index("ix_notifications_profile_view_dedup", "recipient_id", "actor_id", "type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification {self.type} {self.actor_id}->{self.recipient_id}>"
