# blverse/services/messaging/__init__.py
"""
Realtime messaging package.

- events: one typed event per realtime state change
- connection_directory: in-process registry of room and stream connections
- publisher: best-effort hand-off of events to the directory
- sse_stream / websocket_channel: the two client transports
"""

from .connection_directory import (
    ConnectionClosedError,
    ConnectionDirectory,
    DeliveryReport,
    StreamConnection,
    WebSocketConnection,
)
from .events import (
    EventType,
    MessageCreated,
    MessageDeleted,
    MessagesDelivered,
    MessagesRead,
    MessageUpdated,
    ReactionUpdated,
    RealtimeEvent,
    ReplyPreview,
    Typing,
)
from .publisher import Delivery, publish
from .sse_stream import create_sse_stream
from .websocket_channel import serve_room_channel

__all__ = [
    "ConnectionClosedError",
    "ConnectionDirectory",
    "Delivery",
    "DeliveryReport",
    "EventType",
    "MessageCreated",
    "MessageDeleted",
    "MessageUpdated",
    "MessagesDelivered",
    "MessagesRead",
    "ReactionUpdated",
    "RealtimeEvent",
    "ReplyPreview",
    "StreamConnection",
    "Typing",
    "WebSocketConnection",
    "create_sse_stream",
    "publish",
    "serve_room_channel",
]
