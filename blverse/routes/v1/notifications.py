# blverse/routes/v1/notifications.py
"""
Notifications routes - API v1

    GET  /notifications               - Newest first (limit, before)
    GET  /notifications/unread-count  - Unread badge
    POST /notifications/read          - Mark specific ids read
    POST /notifications/read-all      - Mark everything read
    POST /users/{user_id}/profile-view - Record a profile visit
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_notification_service
from ...auth import get_current_user
from ...models.user import User
from ...schemas.notification import (
    MarkNotificationsReadRequest,
    NotificationListResponse,
    ProfileViewResponse,
    UnreadCountResponse,
    UpdatedResponse,
)
from ...services.message_service import parse_cursor
from ...services.notification_service import NotificationService

router = APIRouter(tags=["notifications-v1"])
users_router = APIRouter(tags=["users-v1"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: Optional[int] = Query(None),
    before: Optional[str] = Query(None, description="ISO 8601 timestamp cursor"),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    page = await asyncio.to_thread(
        service.list_for_user, current_user.id, limit=limit, before=parse_cursor(before)
    )
    return NotificationListResponse(items=page.items, next_before=page.next_before)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    unread = await asyncio.to_thread(service.unread_count, current_user.id)
    return UnreadCountResponse(unread=unread)


@router.post("/read", response_model=UpdatedResponse)
async def mark_read(
    request: MarkNotificationsReadRequest,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UpdatedResponse:
    updated = await asyncio.to_thread(service.mark_read, current_user.id, request.ids)
    return UpdatedResponse(updated=updated)


@router.post("/read-all", response_model=UpdatedResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UpdatedResponse:
    updated = await asyncio.to_thread(service.mark_all_read, current_user.id)
    return UpdatedResponse(updated=updated)


@users_router.post("/{user_id}/profile-view", response_model=ProfileViewResponse)
async def track_profile_view(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> ProfileViewResponse:
    notification = await asyncio.to_thread(service.track_profile_view, current_user.id, user_id)
    return ProfileViewResponse(tracked=notification is not None)
