# blverse/routes/v1/messages.py
"""
Messages routes - API v1

Direct messaging endpoints under /api/v1/messages.
All business logic is delegated to MessageService; each mutating endpoint
publishes the realtime event returned by the service after the write has
committed.

Endpoints (static routes BEFORE dynamic routes):
    GET    /stream                    - SSE stream for the current user
    GET    /conversations             - Conversations with unread counts
    POST   /conversations/{user_id}   - Get or create the conversation with a user
    POST   /typing/{user_id}          - Typing indicator (not stored)
    POST   /reactions/{message_id}    - Set my reaction
    DELETE /reactions/{message_id}    - Remove my reaction
    GET    /media/{key}               - Locally stored media

    === Dynamic routes ===
    GET    /{conversation_id}           - History (limit, before)
    GET    /{conversation_id}/search    - Text search
    POST   /{user_id}/text              - Send text
    POST   /{user_id}/media             - Send image / voice note
    POST   /{conversation_id}/read      - Mark read
    POST   /{conversation_id}/delivered - Mark delivered
    PATCH  /{message_id}                - Edit (sender, text only)
    DELETE /{message_id}                - Delete (sender)
"""

import asyncio
from collections.abc import AsyncGenerator
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse

from ...api.dependencies import (
    get_connection_directory,
    get_media_store,
    get_message_service,
)
from ...auth import get_current_user, resolve_user_from_token
from ...core.config import settings
from ...core.exceptions import NotFoundException
from ...database import get_db
from ...models.user import User
from ...schemas.message_requests import (
    EditMessageRequest,
    ReactionRequest,
    SendTextRequest,
    TypingRequest,
)
from ...schemas.message_responses import DeleteMessageResponse, MarkMessagesResponse
from ...services.media_storage import TYPE_BY_EXTENSION, LocalMediaStore, MediaStore
from ...services.message_service import MessageService
from ...services.messaging import ConnectionDirectory, create_sse_stream

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["messages-v1"])

MEDIA_CACHE_CONTROL = "public, max-age=31536000, immutable"


# ============================================================================
# SECTION 1: Static routes
# MUST be defined before dynamic routes to prevent matching issues
# ============================================================================


@router.get(
    "/stream",
    responses={
        200: {"description": "SSE stream established for the user"},
        401: {"description": "Missing or invalid token (empty body)"},
    },
)
async def stream_user_events(
    request: Request,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    directory: ConnectionDirectory = Depends(get_connection_directory),
) -> Response:
    """
    Per-user Server-Sent Events stream.

    EventSource cannot send headers, so the token comes in the query string;
    an Authorization header is accepted for non-browser clients.
    """
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.lower().startswith("bearer "):
            token = auth_header[7:].strip()
    user = await asyncio.to_thread(resolve_user_from_token, db, token)
    if user is None:
        logger.info("[SSE] Rejected stream without valid token")
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)

    user_id = user.id
    logger.info("[SSE] Connection attempt", extra={"user_id": user_id})

    async def event_generator() -> AsyncGenerator[Dict[str, str], None]:
        async for event in create_sse_stream(directory, user_id):
            yield event

    return EventSourceResponse(
        event_generator(),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
        media_type="text/event-stream",
    )


@router.get("/conversations")
async def list_conversations(
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> List[Dict[str, Any]]:
    return await asyncio.to_thread(service.list_conversations, current_user.id)


@router.post("/conversations/{other_user_id}")
async def get_or_create_conversation(
    other_user_id: str,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> Dict[str, Any]:
    conversation, created = await asyncio.to_thread(
        service.get_or_create_conversation, current_user.id, other_user_id
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
    return conversation


@router.post("/typing/{other_user_id}")
async def send_typing(
    other_user_id: str,
    request: TypingRequest,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> Dict[str, bool]:
    delivery = await asyncio.to_thread(
        service.send_typing, current_user.id, other_user_id, request.typing
    )
    await service.publish(delivery)
    return {"ok": True}


@router.post("/reactions/{message_id}")
async def add_reaction(
    message_id: str,
    request: ReactionRequest,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> Dict[str, Any]:
    result = await asyncio.to_thread(service.react, current_user.id, message_id, request.emoji)
    await service.publish(result.delivery)
    return result.payload


@router.delete("/reactions/{message_id}")
async def remove_reaction(
    message_id: str,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> Dict[str, Any]:
    result = await asyncio.to_thread(service.unreact, current_user.id, message_id)
    await service.publish(result.delivery)
    return result.payload


@router.get("/media/{key}", responses={404: {"description": "Unknown media key"}})
async def get_media(key: str, media_store: MediaStore = Depends(get_media_store)) -> FileResponse:
    """Public, immutable media served from local storage."""
    path = (
        await asyncio.to_thread(media_store.resolve, key)
        if isinstance(media_store, LocalMediaStore)
        else None
    )
    if path is None:
        raise NotFoundException("Media not found", code="MEDIA_NOT_FOUND")
    return FileResponse(
        path,
        media_type=TYPE_BY_EXTENSION.get(path.suffix, "application/octet-stream"),
        headers={"Cache-Control": MEDIA_CACHE_CONTROL},
    )


# ============================================================================
# SECTION 2: Dynamic routes
# ============================================================================


@router.get("/{conversation_id}")
async def get_history(
    conversation_id: str,
    limit: Optional[int] = Query(None),
    before: Optional[str] = Query(None, description="ISO 8601 timestamp cursor"),
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> List[Dict[str, Any]]:
    return await asyncio.to_thread(
        service.get_history, current_user.id, conversation_id, limit=limit, before=before
    )


@router.get("/{conversation_id}/search")
async def search_messages(
    conversation_id: str,
    q: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> List[Dict[str, Any]]:
    return await asyncio.to_thread(service.search, current_user.id, conversation_id, q, limit=limit)


@router.post("/{other_user_id}/text", status_code=status.HTTP_201_CREATED)
async def send_text(
    other_user_id: str,
    request: SendTextRequest,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> Dict[str, Any]:
    result = await asyncio.to_thread(
        service.send_text,
        current_user.id,
        other_user_id,
        request.content,
        reply_to_id=request.reply_to,
    )
    await service.publish(result.delivery)
    return result.message


@router.post("/{other_user_id}/media", status_code=status.HTTP_201_CREATED)
async def send_media(
    other_user_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> Dict[str, Any]:
    # One byte past the limit is enough to reject oversize uploads
    data = await file.read(settings.media_max_bytes + 1)
    # Object storage upload and DB writes both block
    result = await asyncio.to_thread(
        service.send_media, current_user.id, other_user_id, file.content_type, data
    )
    await service.publish(result.delivery)
    return result.message


@router.post("/{conversation_id}/read", response_model=MarkMessagesResponse)
async def mark_read(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> MarkMessagesResponse:
    result = await asyncio.to_thread(service.mark_read, current_user.id, conversation_id)
    await service.publish(result.delivery)
    return MarkMessagesResponse(updated=result.updated, message_ids=result.message_ids)


@router.post("/{conversation_id}/delivered", response_model=MarkMessagesResponse)
async def mark_delivered(
    conversation_id: str,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> MarkMessagesResponse:
    result = await asyncio.to_thread(service.mark_delivered, current_user.id, conversation_id)
    await service.publish(result.delivery)
    return MarkMessagesResponse(updated=result.updated, message_ids=result.message_ids)


@router.patch("/{message_id}")
async def edit_message(
    message_id: str,
    request: EditMessageRequest,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> Dict[str, Any]:
    result = await asyncio.to_thread(
        service.edit_message, current_user.id, message_id, request.content
    )
    await service.publish(result.delivery)
    return result.payload


@router.delete("/{message_id}", response_model=DeleteMessageResponse)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
) -> DeleteMessageResponse:
    result = await asyncio.to_thread(service.delete_message, current_user.id, message_id)
    await service.publish(result.delivery)
    return DeleteMessageResponse(success=True)
