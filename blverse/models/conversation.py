# blverse/models/conversation.py
"""
Conversation model for two-party direct messaging.

Each unordered pair of users has exactly one conversation. The pair is
stored sorted (``participant_low`` < ``participant_high``) so the unique
constraint holds no matter which side made first contact.
"""

from datetime import datetime, timezone
from typing import List, Tuple

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


def sorted_pair(user_a: str, user_b: str) -> Tuple[str, str]:
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


class Conversation(Base):
    """
    Attributes:
        id: ULID primary key
        participant_low: The lexicographically smaller participant id
        participant_high: The larger participant id
        last_message: Preview text of the most recent message
        last_message_at: When the most recent message was sent
        last_sender_id: Who sent the most recent message
    """

    __tablename__ = "conversations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    participant_low = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    participant_high = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    last_message = Column(String(1000), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    last_sender_id = Column(String(26), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    low_user = relationship("User", foreign_keys=[participant_low])
    high_user = relationship("User", foreign_keys=[participant_high])
    messages = relationship(
        "Message", back_populates="conversation", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("participant_low", "participant_high", name="uq_conversation_pair"),
        CheckConstraint("participant_low < participant_high", name="ck_conversation_pair_sorted"),
        Index("ix_conversations_low_last", "participant_low", "last_message_at"),
        Index("ix_conversations_high_last", "participant_high", "last_message_at"),
    )

    @property
    def participant_ids(self) -> List[str]:
        return [self.participant_low, self.participant_high]

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.participant_low, self.participant_high)

    def other_participant(self, user_id: str) -> str:
        return self.participant_high if user_id == self.participant_low else self.participant_low

    def __repr__(self) -> str:
        return f"<Conversation {self.id} {self.participant_low}<->{self.participant_high}>"
