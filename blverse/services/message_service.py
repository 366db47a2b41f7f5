# blverse/services/message_service.py
"""
Message Service for direct messaging.

Handles the business logic of two-party chat:
- Conversation resolution (one conversation per user pair)
- Text and media sends
- Read / delivered / reaction state changes
- Sender-only edit and delete
- Building the realtime event for every change

Store writes commit first. Each mutating method returns a result carrying
a ``Delivery`` (event + audience) which the caller hands to ``publish``;
broadcasting is best-effort and cannot undo or fail the write.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from ..models.conversation import Conversation
from ..models.message import Message, MessageType
from ..repositories.conversation_repository import ConversationRepository
from ..repositories.message_repository import MessageRepository
from ..repositories.user_repository import UserRepository
from .base import BaseService
from .media_storage import MediaStore
from .messaging.connection_directory import ConnectionDirectory, DeliveryReport
from .messaging.events import (
    MessageCreated,
    MessageDeleted,
    MessagesDelivered,
    MessagesRead,
    MessageUpdated,
    ReactionUpdated,
    ReplyPreview,
    Typing,
    isoformat,
)
from .messaging.publisher import Delivery, publish

PREVIEW_LENGTH = 200
MAX_EMOJI_LENGTH = 32
MEDIA_PREVIEWS = {
    MessageType.IMAGE.value: "📷 Image",
    MessageType.AUDIO.value: "🎤 Voice note",
}


@dataclass
class MessageResult:
    """A created message plus the event announcing it."""

    message: Dict[str, Any]
    delivery: Delivery


@dataclass
class MarkResult:
    """Outcome of marking a conversation read or delivered."""

    updated: int
    message_ids: List[str]
    delivery: Delivery


@dataclass
class MessageActionResult:
    """Result of edit / delete / reaction with its event."""

    payload: Dict[str, Any]
    delivery: Delivery


def parse_cursor(value: Optional[str]) -> Optional[datetime]:
    """ISO 8601 timestamp cursor; naive values are read as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationException("Invalid 'before' cursor; expected an ISO 8601 timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    return min(max(limit or default, 1), maximum)


def serialize_message(message: Message) -> Dict[str, Any]:
    reply = message.reply_to
    return {
        "id": message.id,
        "conversationId": message.conversation_id,
        "type": message.type,
        "content": message.content,
        "mediaUrl": message.media_url,
        "sender": message.sender_id,
        "createdAt": isoformat(message.created_at),
        "editedAt": isoformat(message.edited_at),
        "readBy": message.read_by,
        "deliveredBy": message.delivered_by,
        "reactions": [{"user": r.user_id, "emoji": r.emoji} for r in message.reactions],
        "replyTo": {"id": reply.id, "content": reply.content, "type": reply.type} if reply else None,
    }


class MessageService(BaseService):
    """
    Orchestrates conversations and messages.

    Owns the connection directory it publishes to, so tests and the app
    each inject their own.
    """

    def __init__(
        self,
        db: Session,
        directory: ConnectionDirectory,
        media_store: Optional[MediaStore] = None,
    ):
        super().__init__(db)
        self.directory = directory
        self.media_store = media_store
        self.conversations = ConversationRepository(db)
        self.messages = MessageRepository(db)
        self.users = UserRepository(db)

    async def publish(self, delivery: Optional[Delivery]) -> Optional[DeliveryReport]:
        return await publish(self.directory, delivery)

    # Access helpers

    def _require_recipient(self, sender_id: str, recipient_id: str) -> None:
        if sender_id == recipient_id:
            raise ValidationException("You cannot message yourself")
        if self.users.get_active(recipient_id) is None:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")

    def _require_conversation(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = self.conversations.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundException("Conversation not found", code="CONVERSATION_NOT_FOUND")
        if not conversation.is_participant(user_id):
            raise ForbiddenException("You are not a participant in this conversation")
        return conversation

    def _require_message_access(self, message_id: str, user_id: str) -> Tuple[Message, Conversation]:
        message = self.messages.get_by_id(message_id)
        if message is None:
            raise NotFoundException("Message not found", code="MESSAGE_NOT_FOUND")
        conversation = self.conversations.get_by_id(message.conversation_id)
        if conversation is None or not conversation.is_participant(user_id):
            raise ForbiddenException("You do not have access to this message")
        return message, conversation

    def _serialize_conversation(self, conversation: Conversation, user_id: str) -> Dict[str, Any]:
        other = self.users.get_by_id(conversation.other_participant(user_id))
        return {
            "id": conversation.id,
            "participants": conversation.participant_ids,
            "otherUser": other.summary() if other else None,
            "lastMessage": conversation.last_message,
            "lastMessageAt": isoformat(conversation.last_message_at),
            "lastSender": conversation.last_sender_id,
            "unreadCount": self.messages.unread_count(conversation.id, user_id),
        }

    # Conversations

    @BaseService.measure_operation("list_conversations")
    def list_conversations(self, user_id: str) -> List[Dict[str, Any]]:
        return [
            self._serialize_conversation(conversation, user_id)
            for conversation in self.conversations.find_for_user(user_id)
        ]

    @BaseService.measure_operation("get_or_create_conversation")
    def get_or_create_conversation(self, user_id: str, other_user_id: str) -> Tuple[Dict[str, Any], bool]:
        self._require_recipient(user_id, other_user_id)
        with self.transaction():
            conversation, created = self.conversations.get_or_create(user_id, other_user_id)
        if created:
            self.logger.info(
                "Conversation created",
                extra={"conversation_id": conversation.id, "user_id": user_id},
            )
        return self._serialize_conversation(conversation, user_id), created

    @BaseService.measure_operation("get_history")
    def get_history(
        self,
        user_id: str,
        conversation_id: str,
        limit: Optional[int] = None,
        before: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        self._require_conversation(conversation_id, user_id)
        page = self.messages.get_history(
            conversation_id,
            clamp_limit(limit, settings.message_history_default_limit, settings.message_history_max_limit),
            parse_cursor(before),
        )
        return [serialize_message(message) for message in page]

    @BaseService.measure_operation("search_messages")
    def search(
        self, user_id: str, conversation_id: str, query: Optional[str], limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        self._require_conversation(conversation_id, user_id)
        term = (query or "").strip()
        if not term:
            return []
        rows = self.messages.search(
            conversation_id,
            term,
            clamp_limit(limit, settings.message_search_default_limit, settings.message_search_max_limit),
        )
        return [serialize_message(message) for message in rows]

    # Sends

    def _created(self, message_id: str, conversation: Conversation) -> MessageResult:
        message = self.messages.get_fresh(message_id)
        if message is None:  # pragma: no cover - just committed
            raise NotFoundException("Message not found", code="MESSAGE_NOT_FOUND")
        reply = message.reply_to
        event = MessageCreated(
            id=message.id,
            conversation_id=message.conversation_id,
            type=message.type,
            content=message.content,
            sender=message.sender_id,
            created_at=message.created_at,
            read_by=tuple(message.read_by),
            reply_to=ReplyPreview(reply.id, reply.content, reply.type) if reply else None,
            media_url=message.media_url,
        )
        return MessageResult(
            message=serialize_message(message),
            delivery=Delivery(event, conversation.id, tuple(conversation.participant_ids)),
        )

    @BaseService.measure_operation("send_text")
    def send_text(
        self,
        sender_id: str,
        recipient_id: str,
        content: Optional[str],
        reply_to_id: Optional[str] = None,
    ) -> MessageResult:
        text = (content or "").strip()
        if not text:
            raise ValidationException("Message content is required")
        self._require_recipient(sender_id, recipient_id)

        with self.transaction():
            conversation, _ = self.conversations.get_or_create(sender_id, recipient_id)
            if reply_to_id:
                reply = self.messages.get_by_id(reply_to_id)
                if reply is None or reply.conversation_id != conversation.id:
                    raise ValidationException("Reply target is not part of this conversation")
            message = self.messages.create_message(
                conversation_id=conversation.id,
                sender_id=sender_id,
                type=MessageType.TEXT.value,
                content=text,
                reply_to_id=reply_to_id or None,
            )
            self.conversations.update_last_message(
                conversation, text[:PREVIEW_LENGTH], message.created_at, sender_id
            )
            message_id = message.id

        return self._created(message_id, conversation)

    @BaseService.measure_operation("send_media")
    def send_media(
        self,
        sender_id: str,
        recipient_id: str,
        content_type: Optional[str],
        data: bytes,
    ) -> MessageResult:
        """
        Store the upload, then create the message pointing at it.

        Storage failure raises ``UpstreamException`` before any row exists.
        """
        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in settings.media_allowed_types:
            raise ValidationException("Unsupported file type", details={"content_type": mime})
        if not data:
            raise ValidationException("File is required")
        if len(data) > settings.media_max_bytes:
            raise ValidationException(
                "File too large", details={"max_bytes": settings.media_max_bytes}
            )
        if self.media_store is None:
            raise InvalidStateException("Media uploads are not configured")
        self._require_recipient(sender_id, recipient_id)

        stored = self.media_store.save(data, mime)
        message_type = MessageType.IMAGE.value if mime.startswith("image/") else MessageType.AUDIO.value

        with self.transaction():
            conversation, _ = self.conversations.get_or_create(sender_id, recipient_id)
            message = self.messages.create_message(
                conversation_id=conversation.id,
                sender_id=sender_id,
                type=message_type,
                content="",
                media_url=stored.url,
            )
            self.conversations.update_last_message(
                conversation, MEDIA_PREVIEWS[message_type], message.created_at, sender_id
            )
            message_id = message.id

        self.logger.info(
            "Media message stored",
            extra={"message_id": message_id, "media_key": stored.key, "content_type": mime},
        )
        return self._created(message_id, conversation)

    # Idempotent state transitions

    @BaseService.measure_operation("mark_read")
    def mark_read(self, user_id: str, conversation_id: str) -> MarkResult:
        conversation = self._require_conversation(conversation_id, user_id)
        with self.transaction():
            updated, message_ids = self.messages.mark_read(conversation_id, user_id)
        event = MessagesRead(conversation_id=conversation_id, reader=user_id, message_ids=tuple(message_ids))
        return MarkResult(
            updated=updated,
            message_ids=message_ids,
            delivery=Delivery(event, conversation_id, tuple(conversation.participant_ids)),
        )

    @BaseService.measure_operation("mark_delivered")
    def mark_delivered(self, user_id: str, conversation_id: str) -> MarkResult:
        conversation = self._require_conversation(conversation_id, user_id)
        with self.transaction():
            updated, message_ids = self.messages.mark_delivered(conversation_id, user_id)
        event = MessagesDelivered(
            conversation_id=conversation_id, deliverer=user_id, message_ids=tuple(message_ids)
        )
        return MarkResult(
            updated=updated,
            message_ids=message_ids,
            delivery=Delivery(event, conversation_id, tuple(conversation.participant_ids)),
        )

    def send_typing(self, user_id: str, other_user_id: str, typing: bool) -> Delivery:
        """Typing is never stored; only the other participant hears it."""
        self._require_recipient(user_id, other_user_id)
        with self.transaction():
            conversation, _ = self.conversations.get_or_create(user_id, other_user_id)
        event = Typing(conversation_id=conversation.id, sender=user_id, typing=bool(typing))
        return Delivery(event, None, (other_user_id,))

    @BaseService.measure_operation("react")
    def react(self, user_id: str, message_id: str, emoji: Optional[str]) -> MessageActionResult:
        value = (emoji or "").strip()
        if not value:
            raise ValidationException("Emoji is required")
        if len(value) > MAX_EMOJI_LENGTH:
            raise ValidationException("Emoji is too long")
        message, conversation = self._require_message_access(message_id, user_id)
        with self.transaction():
            self.messages.set_reaction(message.id, user_id, value)
        event = ReactionUpdated(message_id=message_id, user=user_id, emoji=value)
        return MessageActionResult(
            payload=event.to_payload(),
            delivery=Delivery(event, conversation.id, tuple(conversation.participant_ids)),
        )

    @BaseService.measure_operation("unreact")
    def unreact(self, user_id: str, message_id: str) -> MessageActionResult:
        message, conversation = self._require_message_access(message_id, user_id)
        with self.transaction():
            self.messages.remove_reaction(message.id, user_id)
        event = ReactionUpdated(message_id=message_id, user=user_id, emoji=None)
        return MessageActionResult(
            payload=event.to_payload(),
            delivery=Delivery(event, conversation.id, tuple(conversation.participant_ids)),
        )

    # Sender-only changes

    @BaseService.measure_operation("edit_message")
    def edit_message(self, user_id: str, message_id: str, content: Optional[str]) -> MessageActionResult:
        text = (content or "").strip()
        if not text:
            raise ValidationException("Message content is required")
        message, conversation = self._require_message_access(message_id, user_id)
        if message.type != MessageType.TEXT.value:
            raise InvalidStateException("Only text messages can be edited")
        if message.sender_id != user_id:
            raise ForbiddenException("Only the sender can edit this message")

        with self.transaction():
            message.content = text
            message.edited_at = datetime.now(timezone.utc)
            self.db.flush()

        event = MessageUpdated(
            id=message_id, conversation_id=conversation.id, type=MessageType.TEXT.value, content=text
        )
        return MessageActionResult(
            payload=event.to_payload(),
            delivery=Delivery(event, conversation.id, tuple(conversation.participant_ids)),
        )

    @BaseService.measure_operation("delete_message")
    def delete_message(self, user_id: str, message_id: str) -> MessageActionResult:
        message, conversation = self._require_message_access(message_id, user_id)
        if message.sender_id != user_id:
            raise ForbiddenException("Only the sender can delete this message")

        with self.transaction():
            self.messages.delete_entity(message)

        event = MessageDeleted(conversation_id=conversation.id, message_id=message_id)
        return MessageActionResult(
            payload={"success": True},
            delivery=Delivery(event, conversation.id, tuple(conversation.participant_ids)),
        )
