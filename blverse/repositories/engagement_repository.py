# blverse/repositories/engagement_repository.py
"""
Engagement Repository: edges, cached counters and work hits.

Every kind of engagement (post like, story favorite, work kudos, ...)
shares the same shape: an edge table with a unique (target, user) key and
a cached count column on the target. ``ENGAGEMENT_KINDS`` maps each kind
to its tables so one repository serves all of them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Type

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
import ulid

from ..models.engagement import (
    CommunityPost,
    PostComment,
    PostCommentLike,
    PostLike,
    Story,
    StoryFavorite,
    StoryLike,
    Work,
    WorkBookmark,
    WorkComment,
    WorkCommentLike,
    WorkHit,
    WorkKudos,
)
from .base_repository import BaseRepository


class EngagementKind(str, Enum):
    POST_LIKE = "post_like"
    POST_COMMENT_LIKE = "post_comment_like"
    STORY_LIKE = "story_like"
    STORY_FAVORITE = "story_favorite"
    WORK_KUDOS = "work_kudos"
    WORK_BOOKMARK = "work_bookmark"
    WORK_COMMENT_LIKE = "work_comment_like"


@dataclass(frozen=True)
class EngagementSpec:
    edge: Type[Any]
    target: Type[Any]
    count_column: str
    # Notification sent to the target owner when an edge is created, if any
    notification_type: Optional[str] = None
    entity_type: Optional[str] = None


ENGAGEMENT_KINDS: Dict[EngagementKind, EngagementSpec] = {
    EngagementKind.POST_LIKE: EngagementSpec(
        PostLike, CommunityPost, "likes_count", "like", "community_post"
    ),
    EngagementKind.POST_COMMENT_LIKE: EngagementSpec(
        PostCommentLike, PostComment, "likes_count", "like", "community_comment"
    ),
    EngagementKind.STORY_LIKE: EngagementSpec(StoryLike, Story, "likes_count", "like", "story"),
    EngagementKind.STORY_FAVORITE: EngagementSpec(StoryFavorite, Story, "favorites_count"),
    EngagementKind.WORK_KUDOS: EngagementSpec(WorkKudos, Work, "kudos_count", "kudos", "work"),
    EngagementKind.WORK_BOOKMARK: EngagementSpec(WorkBookmark, Work, "bookmarks_count"),
    EngagementKind.WORK_COMMENT_LIKE: EngagementSpec(
        WorkCommentLike, WorkComment, "likes_count", "like", "work_comment"
    ),
}


class EngagementRepository(BaseRepository[WorkHit]):
    """
    Data access for engagement edges.

    Counts are always rewritten from ``COUNT(*)`` over the edge table.
    """

    def __init__(self, db: Session):
        super().__init__(db, WorkHit)

    def get_target(self, kind: EngagementKind, target_id: str) -> Optional[Any]:
        return self.db.get(ENGAGEMENT_KINDS[kind].target, target_id)

    def find_edge(self, kind: EngagementKind, target_id: str, user_id: str) -> Optional[Any]:
        edge = ENGAGEMENT_KINDS[kind].edge
        return (
            self.db.query(edge).filter(edge.target_id == target_id, edge.user_id == user_id).first()
        )

    def insert_edge_if_absent(self, kind: EngagementKind, target_id: str, user_id: str) -> bool:
        """Create the edge unless one exists; True only if this call wrote it."""
        spec = ENGAGEMENT_KINDS[kind]
        inserted = self.insert_ignoring_conflicts(
            {
                "id": str(ulid.ULID()),
                "target_id": target_id,
                "user_id": user_id,
                "created_at": datetime.now(timezone.utc),
            },
            model=spec.edge,
        )
        return inserted > 0

    def delete_edge(self, kind: EngagementKind, target_id: str, user_id: str) -> bool:
        edge = ENGAGEMENT_KINDS[kind].edge
        removed = (
            self.db.query(edge)
            .filter(edge.target_id == target_id, edge.user_id == user_id)
            .delete(synchronize_session=False)
        )
        return bool(removed)

    def count_edges(self, kind: EngagementKind, target_id: str) -> int:
        edge = ENGAGEMENT_KINDS[kind].edge
        return int(
            self.db.scalar(select(func.count()).select_from(edge).where(edge.target_id == target_id))
            or 0
        )

    def sync_count(self, kind: EngagementKind, target_id: str) -> int:
        """Recount edges and store the result on the target's cached column."""
        spec = ENGAGEMENT_KINDS[kind]
        count = self.count_edges(kind, target_id)
        self.db.execute(
            update(spec.target)
            .where(spec.target.id == target_id)
            .values({spec.count_column: count})
            .execution_options(synchronize_session=False)
        )
        self.db.flush()
        return count

    # Work hits

    def find_user_hit(self, work_id: str, user_id: str) -> Optional[WorkHit]:
        return (
            self.db.query(WorkHit)
            .filter(WorkHit.work_id == work_id, WorkHit.user_id == user_id)
            .first()
        )

    def find_anon_hit(self, work_id: str, anon_id: str) -> Optional[WorkHit]:
        return (
            self.db.query(WorkHit)
            .filter(WorkHit.work_id == work_id, WorkHit.anon_id == anon_id)
            .first()
        )

    def promote_anon_hit(self, work_id: str, anon_id: str, user_id: str) -> bool:
        """Move an anonymous hit onto the user who has now signed in."""
        result = self.db.execute(
            update(WorkHit)
            .where(
                WorkHit.work_id == work_id,
                WorkHit.anon_id == anon_id,
                WorkHit.user_id.is_(None),
            )
            .values(user_id=user_id, anon_id=None)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def insert_hit_if_absent(
        self, work_id: str, user_id: Optional[str] = None, anon_id: Optional[str] = None
    ) -> bool:
        inserted = self.insert_ignoring_conflicts(
            {
                "id": str(ulid.ULID()),
                "work_id": work_id,
                "user_id": user_id,
                "anon_id": anon_id,
                "created_at": datetime.now(timezone.utc),
            }
        )
        return inserted > 0

    def sync_hits_count(self, work_id: str) -> int:
        count = int(
            self.db.scalar(
                select(func.count()).select_from(WorkHit).where(WorkHit.work_id == work_id)
            )
            or 0
        )
        self.db.execute(
            update(Work)
            .where(Work.id == work_id)
            .values(hits_count=count)
            .execution_options(synchronize_session=False)
        )
        self.db.flush()
        return count
