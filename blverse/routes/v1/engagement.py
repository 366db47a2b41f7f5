# blverse/routes/v1/engagement.py
"""
Engagement routes - API v1

Toggles for likes, favorites and bookmarks, one-way kudos and deduplicated
work hits. All of them answer with the authoritative count recomputed from
the edge table.

    POST /community/posts/{post_id}/likes/toggle
    POST /community/comments/{comment_id}/likes/toggle
    POST /stories/{story_id}/likes/toggle
    POST /stories/{story_id}/favorites/toggle
    POST /works/{work_id}/bookmarks/toggle
    POST /works/comments/{comment_id}/likes/toggle
    POST /works/{work_id}/kudos
    POST /works/{work_id}/hit          (auth optional)
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Body, Depends

from ...api.dependencies import get_engagement_service
from ...auth import get_current_user, get_current_user_optional
from ...models.user import User
from ...repositories.engagement_repository import EngagementKind
from ...schemas.engagement import HitRequest, HitResponse, KudosResponse, ToggleResponse
from ...services.engagement_service import EngagementService

community_router = APIRouter(tags=["community-v1"])
stories_router = APIRouter(tags=["stories-v1"])
works_router = APIRouter(tags=["works-v1"])


def _toggle(
    service: EngagementService, kind: EngagementKind, target_id: str, user: User
) -> ToggleResponse:
    result = service.toggle(kind, target_id, user.id)
    return ToggleResponse(active=result.active, count=result.count)


@community_router.post("/posts/{post_id}/likes/toggle", response_model=ToggleResponse)
async def toggle_post_like(
    post_id: str,
    current_user: User = Depends(get_current_user),
    service: EngagementService = Depends(get_engagement_service),
) -> ToggleResponse:
    return await asyncio.to_thread(
        _toggle, service, EngagementKind.POST_LIKE, post_id, current_user
    )


@community_router.post("/comments/{comment_id}/likes/toggle", response_model=ToggleResponse)
async def toggle_post_comment_like(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    service: EngagementService = Depends(get_engagement_service),
) -> ToggleResponse:
    return await asyncio.to_thread(
        _toggle, service, EngagementKind.POST_COMMENT_LIKE, comment_id, current_user
    )


@stories_router.post("/{story_id}/likes/toggle", response_model=ToggleResponse)
async def toggle_story_like(
    story_id: str,
    current_user: User = Depends(get_current_user),
    service: EngagementService = Depends(get_engagement_service),
) -> ToggleResponse:
    return await asyncio.to_thread(
        _toggle, service, EngagementKind.STORY_LIKE, story_id, current_user
    )


@stories_router.post("/{story_id}/favorites/toggle", response_model=ToggleResponse)
async def toggle_story_favorite(
    story_id: str,
    current_user: User = Depends(get_current_user),
    service: EngagementService = Depends(get_engagement_service),
) -> ToggleResponse:
    return await asyncio.to_thread(
        _toggle, service, EngagementKind.STORY_FAVORITE, story_id, current_user
    )


# Static segment first so "comments" is never taken for a work id
@works_router.post("/comments/{comment_id}/likes/toggle", response_model=ToggleResponse)
async def toggle_work_comment_like(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    service: EngagementService = Depends(get_engagement_service),
) -> ToggleResponse:
    return await asyncio.to_thread(
        _toggle, service, EngagementKind.WORK_COMMENT_LIKE, comment_id, current_user
    )


@works_router.post("/{work_id}/bookmarks/toggle", response_model=ToggleResponse)
async def toggle_work_bookmark(
    work_id: str,
    current_user: User = Depends(get_current_user),
    service: EngagementService = Depends(get_engagement_service),
) -> ToggleResponse:
    return await asyncio.to_thread(
        _toggle, service, EngagementKind.WORK_BOOKMARK, work_id, current_user
    )


@works_router.post("/{work_id}/kudos", response_model=KudosResponse)
async def give_kudos(
    work_id: str,
    current_user: User = Depends(get_current_user),
    service: EngagementService = Depends(get_engagement_service),
) -> KudosResponse:
    result = await asyncio.to_thread(service.give_kudos, work_id, current_user.id)
    return KudosResponse(already_given=result.already_given, count=result.count)


@works_router.post("/{work_id}/hit", response_model=HitResponse)
async def record_hit(
    work_id: str,
    request: Optional[HitRequest] = Body(None),
    current_user: Optional[User] = Depends(get_current_user_optional),
    service: EngagementService = Depends(get_engagement_service),
) -> HitResponse:
    anon_id = request.anon_id if request is not None else None
    result = await asyncio.to_thread(
        service.record_hit,
        work_id,
        user_id=current_user.id if current_user else None,
        anon_id=anon_id,
    )
    return HitResponse(deduped=result.deduped, count=result.count)
