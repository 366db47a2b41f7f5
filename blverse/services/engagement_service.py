# blverse/services/engagement_service.py
"""
Engagement Service: likes, favorites, bookmarks, kudos and hits.

Every toggle follows the same recipe:

1. Look for the actor's edge on the target.
2. If present, delete it (inactive). If absent, insert it if still absent;
   losing that insert to a concurrent request is the same outcome as
   winning it (active).
3. Recount edges and store the count on the target.

The count is never adjusted by +1/-1, so interleaved toggles cannot
drift it away from the number of edges that actually exist.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException
from ..models.engagement import Work
from ..repositories.engagement_repository import (
    ENGAGEMENT_KINDS,
    EngagementKind,
    EngagementRepository,
)
from .base import BaseService
from .notification_service import NotificationService


@dataclass
class ToggleResult:
    active: bool
    count: int


@dataclass
class KudosResult:
    already_given: bool
    count: int


@dataclass
class HitResult:
    deduped: bool
    count: int


class EngagementService(BaseService):
    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        super().__init__(db)
        self.repository = EngagementRepository(db)
        self.notifications = notifications or NotificationService(db)

    def _require_target(self, kind: EngagementKind, target_id: str) -> Any:
        target = self.repository.get_target(kind, target_id)
        if target is None:
            label = ENGAGEMENT_KINDS[kind].target.__name__
            raise NotFoundException(f"{label} not found", code="TARGET_NOT_FOUND")
        return target

    @BaseService.measure_operation("toggle_engagement")
    def toggle(self, kind: EngagementKind, target_id: str, actor_id: str) -> ToggleResult:
        target = self._require_target(kind, target_id)
        owner_id = target.user_id

        with self.transaction():
            if self.repository.find_edge(kind, target_id, actor_id) is not None:
                self.repository.delete_edge(kind, target_id, actor_id)
                active = False
                created = False
            else:
                created = self.repository.insert_edge_if_absent(kind, target_id, actor_id)
                if not created:
                    self.logger.info(
                        "Edge already present after concurrent insert; treating as active",
                        extra={"kind": kind.value, "target_id": target_id, "user_id": actor_id},
                    )
                active = True
            count = self.repository.sync_count(kind, target_id)

        if created:
            self._notify_owner(kind, target_id, owner_id, actor_id)
        return ToggleResult(active=active, count=count)

    @BaseService.measure_operation("give_kudos")
    def give_kudos(self, work_id: str, actor_id: str) -> KudosResult:
        """Kudos only go one way; giving them twice is a no-op, not an error."""
        kind = EngagementKind.WORK_KUDOS
        work = self._require_target(kind, work_id)

        with self.transaction():
            if self.repository.find_edge(kind, work_id, actor_id) is not None:
                return KudosResult(
                    already_given=True, count=self.repository.count_edges(kind, work_id)
                )
            created = self.repository.insert_edge_if_absent(kind, work_id, actor_id)
            count = self.repository.sync_count(kind, work_id)

        if created:
            self._notify_owner(kind, work_id, work.author_id, actor_id)
        return KudosResult(already_given=not created, count=count)

    @BaseService.measure_operation("record_hit")
    def record_hit(
        self, work_id: str, user_id: Optional[str] = None, anon_id: Optional[str] = None
    ) -> HitResult:
        """
        Count a visit at most once per visitor.

        An anonymous hit followed by a signed-in visit carrying the same
        ``anon_id`` promotes the anonymous row instead of counting again.
        """
        work = self.db.get(Work, work_id)
        if work is None:
            raise NotFoundException("Work not found", code="TARGET_NOT_FOUND")

        with self.transaction():
            if not user_id and not anon_id:
                return HitResult(deduped=True, count=self.repository.sync_hits_count(work_id))
            if user_id:
                if self.repository.find_user_hit(work_id, user_id) is not None:
                    return HitResult(deduped=True, count=self.repository.sync_hits_count(work_id))
                if anon_id and self.repository.promote_anon_hit(work_id, anon_id, user_id):
                    self.logger.info(
                        "Promoted anonymous hit", extra={"work_id": work_id, "user_id": user_id}
                    )
                    return HitResult(deduped=True, count=self.repository.sync_hits_count(work_id))
                inserted = self.repository.insert_hit_if_absent(work_id, user_id=user_id)
            else:
                if self.repository.find_anon_hit(work_id, anon_id) is not None:
                    return HitResult(deduped=True, count=self.repository.sync_hits_count(work_id))
                inserted = self.repository.insert_hit_if_absent(work_id, anon_id=anon_id)
            count = self.repository.sync_hits_count(work_id)

        return HitResult(deduped=not inserted, count=count)

    def _notify_owner(self, kind: EngagementKind, target_id: str, owner_id: str, actor_id: str) -> None:
        spec = ENGAGEMENT_KINDS[kind]
        if not spec.notification_type or not spec.entity_type:
            return
        self.notifications.create_notification(
            recipient_id=owner_id,
            actor_id=actor_id,
            type=spec.notification_type,
            entity_type=spec.entity_type,
            entity_id=target_id,
        )
