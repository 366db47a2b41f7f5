# blverse/repositories/message_repository.py
"""
Message Repository.

Owns message rows plus their read, delivery and reaction edges. The read
and delivery sets only ever grow: marking inserts missing edges and never
removes any.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple, Type, Union

from sqlalchemy import and_, exists, func, select
from sqlalchemy.orm import Session

from ..models.message import Message, MessageDelivery, MessageReaction, MessageRead
from .base_repository import BaseRepository

StateEdge = Union[Type[MessageRead], Type[MessageDelivery]]


def escape_like(term: str, escape_char: str = "\\") -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )


class MessageRepository(BaseRepository[Message]):
    def __init__(self, db: Session):
        super().__init__(db, Message)

    def create_message(
        self,
        *,
        conversation_id: str,
        sender_id: str,
        type: str,
        content: str,
        media_url: Optional[str] = None,
        reply_to_id: Optional[str] = None,
    ) -> Message:
        """Create a message; the sender is recorded as its first reader."""
        message = self.create(
            conversation_id=conversation_id,
            sender_id=sender_id,
            type=type,
            content=content,
            media_url=media_url,
            reply_to_id=reply_to_id,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(MessageRead(message_id=message.id, user_id=sender_id, read_at=message.created_at))
        self.db.flush()
        return message

    def get_fresh(self, message_id: str) -> Optional[Message]:
        """Load a message and re-read its edge collections from the database."""
        return (
            self.db.query(Message)
            .filter(Message.id == message_id)
            .execution_options(populate_existing=True)
            .first()
        )

    def get_history(
        self,
        conversation_id: str,
        limit: int,
        before: Optional[datetime] = None,
    ) -> List[Message]:
        """
        One page of history, returned oldest first.

        The page is selected newest-first on (created_at, id) so ``before``
        acts as a cursor walking backwards through the conversation.
        """
        query = self.db.query(Message).filter(Message.conversation_id == conversation_id)
        if before is not None:
            query = query.filter(Message.created_at < before)
        page = (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
            .all()
        )
        page.reverse()
        return page

    def search(self, conversation_id: str, term: str, limit: int) -> List[Message]:
        pattern = f"%{escape_like(term)}%"
        return (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.content.ilike(pattern, escape="\\"),
            )
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .all()
        )

    def _mark(self, edge: StateEdge, stamp_column: str, conversation_id: str, user_id: str) -> Tuple[int, List[str]]:
        pending = self.db.scalars(
            select(Message.id).where(
                Message.conversation_id == conversation_id,
                Message.sender_id != user_id,
                ~exists().where(and_(edge.message_id == Message.id, edge.user_id == user_id)),
            )
        ).all()
        now = datetime.now(timezone.utc)
        modified = self.insert_ignoring_conflicts(
            [{"message_id": mid, "user_id": user_id, stamp_column: now} for mid in pending],
            model=edge,
        )
        # Recompute the full set rather than reporting only this call's delta
        marked = self.db.scalars(
            select(Message.id)
            .join(edge, and_(edge.message_id == Message.id, edge.user_id == user_id))
            .where(Message.conversation_id == conversation_id, Message.sender_id != user_id)
            .order_by(Message.created_at, Message.id)
        ).all()
        return modified, list(marked)

    def mark_read(self, conversation_id: str, user_id: str) -> Tuple[int, List[str]]:
        return self._mark(MessageRead, "read_at", conversation_id, user_id)

    def mark_delivered(self, conversation_id: str, user_id: str) -> Tuple[int, List[str]]:
        return self._mark(MessageDelivery, "delivered_at", conversation_id, user_id)

    def unread_count(self, conversation_id: str, user_id: str) -> int:
        return int(
            self.db.scalar(
                select(func.count(Message.id)).where(
                    Message.conversation_id == conversation_id,
                    Message.sender_id != user_id,
                    ~exists().where(
                        and_(MessageRead.message_id == Message.id, MessageRead.user_id == user_id)
                    ),
                )
            )
            or 0
        )

    def set_reaction(self, message_id: str, user_id: str, emoji: str) -> MessageReaction:
        """Replace whatever reaction the user had on the message."""
        self.remove_reaction(message_id, user_id)
        reaction = MessageReaction(message_id=message_id, user_id=user_id, emoji=emoji)
        self.db.add(reaction)
        self.db.flush()
        return reaction

    def remove_reaction(self, message_id: str, user_id: str) -> bool:
        removed = (
            self.db.query(MessageReaction)
            .filter(MessageReaction.message_id == message_id, MessageReaction.user_id == user_id)
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return bool(removed)
