# blverse/services/notification_service.py
"""
Notification Service

Writes and reads in-app notifications. Creation is best-effort: it is
called after the action that caused it has committed, and any failure is
logged and swallowed so it can never fail that action.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException
from ..models.notification import Notification
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.notification_repository import NotificationRepository
from ..repositories.user_repository import UserRepository
from .base import BaseService
from .messaging.events import isoformat


@dataclass
class NotificationPage:
    items: List[Dict[str, Any]]
    next_before: Optional[str]


class NotificationService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = NotificationRepository(db)
        self.users = UserRepository(db)

    def create_notification(
        self,
        *,
        recipient_id: str,
        actor_id: str,
        type: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        url: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        """
        Create a notification unless the actor is notifying themselves.

        Returns None when skipped or when the write failed.
        """
        if not recipient_id or recipient_id == actor_id:
            prometheus_metrics.record_notification(type, "skipped")
            return None
        try:
            with self.transaction():
                notification = self.repository.create_notification(
                    recipient_id=recipient_id,
                    actor_id=actor_id,
                    type=type,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    url=url,
                    meta=meta,
                )
        except Exception as e:
            self.logger.error(
                f"[NOTIFY] Failed to create {type} notification: {e}",
                extra={"recipient_id": recipient_id, "actor_id": actor_id},
            )
            prometheus_metrics.record_notification(type, "failed")
            return None
        prometheus_metrics.record_notification(type, "created")
        return notification

    @BaseService.measure_operation("track_profile_view")
    def track_profile_view(self, viewer_id: str, profile_user_id: str) -> Optional[Notification]:
        """At most one profile_view per (recipient, actor) inside the dedup window."""
        if self.users.get_active(profile_user_id) is None:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")
        if viewer_id == profile_user_id:
            return None
        since = datetime.now(timezone.utc) - timedelta(hours=settings.profile_view_dedup_hours)
        try:
            if self.repository.exists_since(profile_user_id, viewer_id, "profile_view", since):
                prometheus_metrics.record_notification("profile_view", "skipped")
                return None
        except SQLAlchemyError as e:
            self.logger.error(f"[NOTIFY] Profile view dedup lookup failed: {e}")
            return None
        return self.create_notification(
            recipient_id=profile_user_id,
            actor_id=viewer_id,
            type="profile_view",
            entity_type="profile",
            entity_id=profile_user_id,
            url=f"/profile/{viewer_id}",
        )

    # Inbox

    @BaseService.measure_operation("list_notifications")
    def list_for_user(
        self, user_id: str, limit: Optional[int] = None, before: Optional[datetime] = None
    ) -> NotificationPage:
        page_size = min(
            max(limit or settings.notification_list_default_limit, 1),
            settings.notification_list_max_limit,
        )
        rows = self.repository.get_user_notifications(user_id, page_size, before)
        items = [self._serialize(row) for row in rows]
        next_before = items[-1]["createdAt"] if len(items) == page_size else None
        return NotificationPage(items=items, next_before=next_before)

    def unread_count(self, user_id: str) -> int:
        return self.repository.get_unread_count(user_id)

    @BaseService.measure_operation("mark_notifications_read")
    def mark_read(self, user_id: str, notification_ids: Sequence[str]) -> int:
        with self.transaction():
            return self.repository.mark_as_read_for_user(user_id, notification_ids)

    @BaseService.measure_operation("mark_all_notifications_read")
    def mark_all_read(self, user_id: str) -> int:
        with self.transaction():
            return self.repository.mark_all_as_read(user_id)

    @staticmethod
    def _serialize(notification: Notification) -> Dict[str, Any]:
        return {
            "id": notification.id,
            "type": notification.type,
            "entityType": notification.entity_type,
            "entityId": notification.entity_id,
            "url": notification.url,
            "meta": notification.meta or {},
            "actor": notification.actor.summary() if notification.actor else None,
            "readAt": isoformat(notification.read_at),
            "createdAt": isoformat(notification.created_at),
        }
