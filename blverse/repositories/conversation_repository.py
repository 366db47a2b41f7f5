# blverse/repositories/conversation_repository.py
"""
Conversation Repository for two-party messaging.

Provides data access methods for conversations between two users.
Follows the repository pattern with clean separation from business logic.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
import ulid

from ..models.conversation import Conversation, sorted_pair
from .base_repository import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    """
    Repository for Conversation entity operations.

    Handles:
    - Finding or creating the single conversation for a user pair
    - Listing conversations for a user by recency
    - Updating the denormalized last-message fields
    """

    def __init__(self, db: Session):
        super().__init__(db, Conversation)

    def find_by_pair(self, user_a: str, user_b: str) -> Optional[Conversation]:
        """
        Find the conversation between two users, in either argument order.

        The pair is stored sorted, so sorting the arguments gives an exact
        match on the unique key.
        """
        low, high = sorted_pair(user_a, user_b)
        return (
            self.db.query(Conversation)
            .filter(Conversation.participant_low == low, Conversation.participant_high == high)
            .first()
        )

    def get_or_create(self, user_a: str, user_b: str) -> Tuple[Conversation, bool]:
        """
        Get an existing conversation or create a new one.

        Two simultaneous first contacts both attempt the insert; the unique
        constraint on the sorted pair lets exactly one of them write and the
        other simply reads the winner back.

        Returns:
            Tuple of (conversation, created) where created is True if this
            call inserted the row
        """
        existing = self.find_by_pair(user_a, user_b)
        if existing:
            return existing, False

        low, high = sorted_pair(user_a, user_b)
        now = datetime.now(timezone.utc)
        inserted = self.insert_ignoring_conflicts(
            {
                "id": str(ulid.ULID()),
                "participant_low": low,
                "participant_high": high,
                "created_at": now,
                "updated_at": now,
            }
        )
        conversation = self.find_by_pair(low, high)
        if conversation is None:  # pragma: no cover - the row exists after either branch
            raise RuntimeError(f"Conversation for {low}/{high} vanished after insert")
        if not inserted:
            self.logger.info(
                "Conversation insert lost a race; using existing row",
                extra={"conversation_id": conversation.id},
            )
        return conversation, bool(inserted)

    def find_for_user(self, user_id: str, limit: Optional[int] = None) -> List[Conversation]:
        """Conversations the user takes part in, most recently active first."""
        query = (
            self.db.query(Conversation)
            .filter(
                or_(
                    Conversation.participant_low == user_id,
                    Conversation.participant_high == user_id,
                )
            )
            .order_by(
                func.coalesce(Conversation.last_message_at, Conversation.created_at).desc(),
                Conversation.id.desc(),
            )
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    def update_last_message(
        self,
        conversation: Conversation,
        preview: str,
        sent_at: datetime,
        sender_id: str,
    ) -> None:
        conversation.last_message = preview
        conversation.last_message_at = sent_at
        conversation.last_sender_id = sender_id
        self.db.flush()
