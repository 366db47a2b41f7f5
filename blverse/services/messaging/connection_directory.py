# blverse/services/messaging/connection_directory.py
"""
In-process directory of realtime connections.

Two transports are tracked side by side:

- Room channel: WebSocket clients explicitly join rooms keyed by a
  conversation id or by their own user id.
- Stream channel: per-user Server-Sent Events streams. A user may hold
  several at once (one per open tab).

The directory is created once per application (``app.state``) and handed
to the services that publish; nothing here is a module-level singleton.
It only knows about connections in this process. Fan-out across several
server processes would need a shared pub/sub in front of ``broadcast``.

Delivery is at-most-once and best-effort: a client that is not connected
when ``broadcast`` runs never sees the event, and a failed write to one
client is logged, that client is dropped, and delivery to the rest goes on.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from starlette import status
from starlette.websockets import WebSocket
import ulid

from ...monitoring.prometheus_metrics import prometheus_metrics
from .events import RealtimeEvent

logger = logging.getLogger(__name__)

ROOM_CHANNEL = "room"
STREAM_CHANNEL = "stream"


class ConnectionClosedError(Exception):
    """Raised when writing to a connection that can no longer accept events."""


class RealtimeConnection(Protocol):
    connection_id: str
    user_id: str

    async def send(self, event_name: str, payload: Dict[str, Any]) -> None: ...

    def close(self) -> None: ...


class StreamConnection:
    """
    One open SSE response.

    Writes go into a bounded queue drained by the response generator.
    A full queue means the client stopped reading and counts as a
    failed write.
    """

    CLOSE_SENTINEL = None

    def __init__(self, user_id: str, max_queue: int = 100):
        self.connection_id = str(ulid.ULID())
        self.user_id = user_id
        self.queue: asyncio.Queue[Optional[Dict[str, Any]]] = asyncio.Queue(maxsize=max_queue)
        self.closed = False

    async def send(self, event_name: str, payload: Dict[str, Any]) -> None:
        if self.closed:
            raise ConnectionClosedError(f"stream {self.connection_id} is closed")
        try:
            self.queue.put_nowait({"event": event_name, "data": payload})
        except asyncio.QueueFull as exc:
            raise ConnectionClosedError(f"stream {self.connection_id} is not draining") from exc

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.queue.put_nowait(self.CLOSE_SENTINEL)
        except asyncio.QueueFull:
            # The reader is stuck; it will notice ``closed`` once it drains
            pass

    def __repr__(self) -> str:
        return f"<StreamConnection {self.connection_id} user={self.user_id}>"


class WebSocketConnection:
    """A WebSocket client on the room channel."""

    def __init__(self, websocket: WebSocket, user_id: str):
        self.connection_id = str(ulid.ULID())
        self.user_id = user_id
        self.websocket = websocket
        self.closed = False
        self._closing: Optional[asyncio.Task] = None

    async def send(self, event_name: str, payload: Dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event_name, "data": payload})

    def close(self) -> None:
        """
        Close a socket the directory gave up on so the client reconnects and
        re-joins instead of idling in no room.
        """
        if self.closed:
            return
        self.closed = True
        self._closing = asyncio.ensure_future(self._close_socket())

    async def _close_socket(self) -> None:
        try:
            await self.websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except Exception as exc:
            logger.debug(
                f"[WS] Socket already gone on close: {exc}",
                extra={"connection_id": self.connection_id},
            )

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.connection_id} user={self.user_id}>"


@dataclass
class DeliveryReport:
    event: str
    delivered: int = 0
    failed: int = 0
    failed_connections: List[str] = field(default_factory=list)


class ConnectionDirectory:
    """Registry of room memberships and per-user streams for this process."""

    def __init__(self, stream_queue_size: int = 100):
        self.stream_queue_size = stream_queue_size
        self._rooms: Dict[str, Set[RealtimeConnection]] = defaultdict(set)
        self._memberships: Dict[str, Set[str]] = defaultdict(set)
        self._streams: Dict[str, Set[RealtimeConnection]] = defaultdict(set)

    # Stream channel

    def open_stream(self, user_id: str) -> StreamConnection:
        connection = StreamConnection(user_id, max_queue=self.stream_queue_size)
        self.attach_stream(connection)
        return connection

    def attach_stream(self, connection: RealtimeConnection) -> None:
        self._streams[connection.user_id].add(connection)
        logger.info(
            "[SSE] Stream registered",
            extra={
                "user_id": connection.user_id,
                "connection_id": connection.connection_id,
                "streams_for_user": len(self._streams[connection.user_id]),
            },
        )
        prometheus_metrics.set_connections(STREAM_CHANNEL, self.stream_count())

    def detach_stream(self, connection: RealtimeConnection) -> None:
        streams = self._streams.get(connection.user_id)
        if streams is not None:
            streams.discard(connection)
            if not streams:
                del self._streams[connection.user_id]
        connection.close()
        logger.info(
            "[SSE] Stream removed",
            extra={"user_id": connection.user_id, "connection_id": connection.connection_id},
        )
        prometheus_metrics.set_connections(STREAM_CHANNEL, self.stream_count())

    def streams_for(self, user_id: str) -> List[RealtimeConnection]:
        return list(self._streams.get(user_id, ()))

    def stream_count(self, user_id: Optional[str] = None) -> int:
        if user_id is not None:
            return len(self._streams.get(user_id, ()))
        return sum(len(streams) for streams in self._streams.values())

    # Room channel

    def join(self, room: str, connection: RealtimeConnection) -> None:
        self._rooms[room].add(connection)
        self._memberships[connection.connection_id].add(room)
        logger.debug("[WS] Joined room", extra={"room": room, "user_id": connection.user_id})
        prometheus_metrics.set_connections(ROOM_CHANNEL, len(self._memberships))

    def leave(self, room: str, connection: RealtimeConnection) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._rooms[room]
        rooms = self._memberships.get(connection.connection_id)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self._memberships[connection.connection_id]

    def drop(self, connection: RealtimeConnection) -> None:
        """Forget every room membership of a disconnected socket."""
        for room in list(self._memberships.get(connection.connection_id, ())):
            self.leave(room, connection)
        self._memberships.pop(connection.connection_id, None)
        prometheus_metrics.set_connections(ROOM_CHANNEL, len(self._memberships))

    def room_members(self, room: str) -> List[RealtimeConnection]:
        return list(self._rooms.get(room, ()))

    def rooms_of(self, connection: RealtimeConnection) -> Set[str]:
        return set(self._memberships.get(connection.connection_id, ()))

    # Fan-out

    async def broadcast(
        self,
        event: RealtimeEvent,
        conversation_id: Optional[str] = None,
        user_ids: Iterable[str] = (),
    ) -> DeliveryReport:
        """
        Push one event over both channels.

        Room channel: the conversation room (if given) plus each target
        user's personal room. A socket that sits in several of those rooms
        still receives the event once.

        Stream channel: every open stream of each target user.

        Never raises; per-connection failures are recorded in the report.
        """
        event_name = event.event_type.value
        payload = event.to_payload()
        targets = list(dict.fromkeys(user_ids))
        report = DeliveryReport(event=event_name)

        rooms = ([conversation_id] if conversation_id else []) + targets
        room_connections: Dict[str, RealtimeConnection] = {}
        for room in rooms:
            for connection in self.room_members(room):
                room_connections.setdefault(connection.connection_id, connection)

        for connection in room_connections.values():
            await self._deliver(ROOM_CHANNEL, connection, event_name, payload, report)

        for user_id in targets:
            for connection in self.streams_for(user_id):
                await self._deliver(STREAM_CHANNEL, connection, event_name, payload, report)

        logger.debug(
            "[BROADCAST] Event fanned out",
            extra={
                "event": event_name,
                "conversation_id": conversation_id,
                "delivered": report.delivered,
                "failed": report.failed,
            },
        )
        return report

    async def _deliver(
        self,
        channel: str,
        connection: RealtimeConnection,
        event_name: str,
        payload: Dict[str, Any],
        report: DeliveryReport,
    ) -> None:
        try:
            await connection.send(event_name, payload)
        except Exception as exc:
            report.failed += 1
            report.failed_connections.append(connection.connection_id)
            prometheus_metrics.record_delivery(channel, event_name, "failed")
            logger.warning(
                f"[BROADCAST] Dropping {channel} connection after failed write: {exc}",
                extra={
                    "user_id": connection.user_id,
                    "connection_id": connection.connection_id,
                    "event": event_name,
                },
            )
            if channel == STREAM_CHANNEL:
                self.detach_stream(connection)
            else:
                self.drop(connection)
                connection.close()
            return
        report.delivered += 1
        prometheus_metrics.record_delivery(channel, event_name, "delivered")

    async def close(self) -> None:
        """Close every stream and forget all memberships (application shutdown)."""
        for streams in list(self._streams.values()):
            for connection in list(streams):
                connection.close()
        self._streams.clear()
        self._rooms.clear()
        self._memberships.clear()
        logger.info("[BROADCAST] Connection directory closed")
