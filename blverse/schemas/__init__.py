from .engagement import HitRequest, HitResponse, KudosResponse, ToggleResponse
from .message_requests import (
    EditMessageRequest,
    ReactionRequest,
    SendTextRequest,
    TypingRequest,
)
from .message_responses import DeleteMessageResponse, MarkMessagesResponse
from .notification import (
    MarkNotificationsReadRequest,
    NotificationListResponse,
    ProfileViewResponse,
    UnreadCountResponse,
    UpdatedResponse,
)

__all__ = [
    "DeleteMessageResponse",
    "EditMessageRequest",
    "HitRequest",
    "HitResponse",
    "KudosResponse",
    "MarkMessagesResponse",
    "MarkNotificationsReadRequest",
    "NotificationListResponse",
    "ProfileViewResponse",
    "ReactionRequest",
    "SendTextRequest",
    "ToggleResponse",
    "TypingRequest",
    "UnreadCountResponse",
    "UpdatedResponse",
]
