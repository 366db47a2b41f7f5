# blverse/services/messaging/events.py
"""
Realtime event definitions.

Each event kind is a frozen dataclass with its required fields, so both
transports (WebSocket rooms and SSE streams) receive exactly the same
payload built by ``to_payload()``. Wire keys are camelCase.

Event frames on the wire:
{
    "event": str,   # EventType value
    "data": dict    # to_payload()
}
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple


class EventType(str, Enum):
    """Valid realtime event types."""

    MESSAGE_CREATED = "message_created"
    MESSAGE_UPDATED = "message_updated"
    MESSAGE_DELETED = "message_deleted"
    MESSAGES_READ = "messages_read"
    MESSAGES_DELIVERED = "messages_delivered"
    REACTION_UPDATED = "reaction_updated"
    TYPING = "typing"


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """ISO 8601 in UTC; naive values (as SQLite returns them) are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True)
class ReplyPreview:
    id: str
    content: str
    type: str

    def to_payload(self) -> Dict[str, Any]:
        return {"id": self.id, "content": self.content, "type": self.type}


@dataclass(frozen=True)
class RealtimeEvent:
    event_type: ClassVar[EventType]

    def to_payload(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_frame(self) -> Dict[str, Any]:
        return {"event": self.event_type.value, "data": self.to_payload()}


@dataclass(frozen=True)
class MessageCreated(RealtimeEvent):
    event_type: ClassVar[EventType] = EventType.MESSAGE_CREATED

    id: str
    conversation_id: str
    type: str
    content: str
    sender: str
    created_at: datetime
    read_by: Tuple[str, ...]
    reply_to: Optional[ReplyPreview] = None
    media_url: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "conversationId": self.conversation_id,
            "type": self.type,
            "content": self.content,
            "sender": self.sender,
            "createdAt": isoformat(self.created_at),
            "readBy": list(self.read_by),
            "replyTo": self.reply_to.to_payload() if self.reply_to else None,
        }
        if self.media_url:
            payload["mediaUrl"] = self.media_url
        return payload


@dataclass(frozen=True)
class MessageUpdated(RealtimeEvent):
    event_type: ClassVar[EventType] = EventType.MESSAGE_UPDATED

    id: str
    conversation_id: str
    type: str
    content: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "type": self.type,
            "content": self.content,
        }


@dataclass(frozen=True)
class MessageDeleted(RealtimeEvent):
    """Tombstone: identifiers only, so clients can prune local state."""

    event_type: ClassVar[EventType] = EventType.MESSAGE_DELETED

    conversation_id: str
    message_id: str

    def to_payload(self) -> Dict[str, Any]:
        return {"conversationId": self.conversation_id, "messageId": self.message_id}


@dataclass(frozen=True)
class MessagesRead(RealtimeEvent):
    event_type: ClassVar[EventType] = EventType.MESSAGES_READ

    conversation_id: str
    reader: str
    message_ids: Tuple[str, ...]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "reader": self.reader,
            "messageIds": list(self.message_ids),
        }


@dataclass(frozen=True)
class MessagesDelivered(RealtimeEvent):
    event_type: ClassVar[EventType] = EventType.MESSAGES_DELIVERED

    conversation_id: str
    deliverer: str
    message_ids: Tuple[str, ...]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "deliverer": self.deliverer,
            "messageIds": list(self.message_ids),
        }


@dataclass(frozen=True)
class ReactionUpdated(RealtimeEvent):
    """``emoji`` is None when the user removed their reaction."""

    event_type: ClassVar[EventType] = EventType.REACTION_UPDATED

    message_id: str
    user: str
    emoji: Optional[str]

    def to_payload(self) -> Dict[str, Any]:
        return {"messageId": self.message_id, "user": self.user, "emoji": self.emoji}


@dataclass(frozen=True)
class Typing(RealtimeEvent):
    event_type: ClassVar[EventType] = EventType.TYPING

    conversation_id: str
    sender: str
    typing: bool

    def to_payload(self) -> Dict[str, Any]:
        return {"conversationId": self.conversation_id, "from": self.sender, "typing": self.typing}
