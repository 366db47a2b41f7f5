# blverse/models/message.py
"""
Message model and its per-user state.

Read and delivery state are sets of (message, user) edges that only grow.
Reactions are single-valued per user: the (message, user) pair is unique.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    conversation_id = Column(
        String(26), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(10), nullable=False, default=MessageType.TEXT.value)
    content = Column(Text, nullable=False, default="")
    media_url = Column(String(500), nullable=True)
    reply_to_id = Column(String(26), ForeignKey("messages.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    edited_at = Column(DateTime(timezone=True), nullable=True)

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id])
    reply_to = relationship("Message", remote_side=[id], foreign_keys=[reply_to_id])
    reads = relationship(
        "MessageRead",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="MessageRead.read_at",
    )
    deliveries = relationship(
        "MessageDelivery",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="MessageDelivery.delivered_at",
    )
    reactions = relationship(
        "MessageReaction",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="MessageReaction.created_at",
    )

    __table_args__ = (
        CheckConstraint("type IN ('text', 'image', 'audio')", name="ck_messages_type"),
        Index("ix_messages_conversation_created", "conversation_id", "created_at", "id"),
    )

    @property
    def read_by(self) -> list[str]:
        return [edge.user_id for edge in self.reads]

    @property
    def delivered_by(self) -> list[str]:
        return [edge.user_id for edge in self.deliveries]

    def __repr__(self) -> str:
        return f"<Message {self.id} {self.type} in {self.conversation_id}>"


class MessageRead(Base):
    __tablename__ = "message_reads"

    message_id = Column(
        String(26), ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    read_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class MessageDelivery(Base):
    __tablename__ = "message_deliveries"

    message_id = Column(
        String(26), ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    delivered_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )


class MessageReaction(Base):
    """One emoji per user per message."""

    __tablename__ = "message_reactions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    message_id = Column(String(26), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    emoji = Column(String(32), nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (UniqueConstraint("message_id", "user_id", name="uq_message_reaction_user"),)
