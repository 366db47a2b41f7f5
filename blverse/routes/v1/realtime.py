# blverse/routes/v1/realtime.py
"""
WebSocket room channel - API v1

    GET /ws?token=...   (WebSocket upgrade)

The handshake is authenticated before accepting; failures close with 4401.
A user may join their own user room and rooms of conversations they take
part in.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket

from ...auth import resolve_user_from_token
from ...repositories.conversation_repository import ConversationRepository
from ...services.messaging import serve_room_channel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime-v1"])

WS_UNAUTHORIZED = 4401


@router.websocket("/ws")
async def room_socket(websocket: WebSocket, token: Optional[str] = Query(None)) -> None:
    session_factory = websocket.app.state.session_factory

    def authenticate() -> Optional[str]:
        db = session_factory()
        try:
            user = resolve_user_from_token(db, token)
            return user.id if user is not None else None
        finally:
            db.close()

    user_id = await asyncio.to_thread(authenticate)

    if user_id is None:
        logger.info("[WS] Rejected handshake without valid token")
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    await websocket.accept()

    def can_join(room: str) -> bool:
        if room == user_id:
            return True
        session = session_factory()
        try:
            conversation = ConversationRepository(session).get_by_id(room)
            return conversation is not None and conversation.is_participant(user_id)
        finally:
            session.close()

    directory = websocket.app.state.connection_directory
    await serve_room_channel(websocket, directory, user_id, can_join)
