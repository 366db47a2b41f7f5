# blverse/services/messaging/websocket_channel.py
"""
Room-subscription channel over WebSocket.

Clients send small JSON commands to join or leave rooms; the server pushes
``{"event", "data"}`` frames for every broadcast that targets a room the
socket is in. Memberships disappear when the socket disconnects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Literal, Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, ValidationError

from .connection_directory import ConnectionDirectory, WebSocketConnection

logger = logging.getLogger(__name__)


class RoomCommand(BaseModel):
    """Client → server."""

    model_config = ConfigDict(extra="ignore")

    action: Literal["join", "leave", "ping"]
    room: Optional[str] = None


async def _send(websocket: WebSocket, event: str, **data: object) -> None:
    await websocket.send_json({"event": event, "data": data})


async def serve_room_channel(
    websocket: WebSocket,
    directory: ConnectionDirectory,
    user_id: str,
    can_join: Callable[[str], bool],
) -> None:
    """
    Run one accepted socket until it disconnects.

    ``can_join(room)`` decides whether this user may subscribe to a room. It
    may hit the database, so it runs in a worker thread. The caller allows the user's own id and conversations they belong to.
    """
    connection = WebSocketConnection(websocket, user_id)
    logger.info(
        "[WS] Connected", extra={"user_id": user_id, "connection_id": connection.connection_id}
    )
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                command = RoomCommand.model_validate_json(raw)
            except ValidationError:
                await _send(websocket, "error", message="Invalid command")
                continue

            if command.action == "ping":
                await _send(websocket, "pong")
                continue

            if not command.room:
                await _send(websocket, "error", message="room is required")
                continue

            if command.action == "leave":
                directory.leave(command.room, connection)
                await _send(websocket, "left", room=command.room)
                continue

            if not await asyncio.to_thread(can_join, command.room):
                logger.warning(
                    "[WS] Join refused", extra={"user_id": user_id, "room": command.room}
                )
                await _send(websocket, "error", message="Not allowed to join room", room=command.room)
                continue

            directory.join(command.room, connection)
            await _send(websocket, "joined", room=command.room)
    except WebSocketDisconnect:
        logger.info("[WS] Disconnected", extra={"user_id": user_id})
    finally:
        directory.drop(connection)
