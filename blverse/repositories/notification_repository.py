"""Repository for in-app notification records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.notification import NOTIFICATION_ENTITY_TYPES, NOTIFICATION_TYPES, Notification
from .base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session) -> None:
        super().__init__(db, Notification)

    def create_notification(
        self,
        *,
        recipient_id: str,
        actor_id: str,
        type: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        url: Optional[str] = None,
        meta: Optional[dict[str, Any]] = None,
    ) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise RepositoryException(f"Invalid notification type: {type}")
        if entity_type not in NOTIFICATION_ENTITY_TYPES:
            raise RepositoryException(f"Invalid notification entity type: {entity_type}")
        notification = Notification(
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=type,
            entity_type=entity_type,
            entity_id=entity_id,
            url=url,
            meta=meta or {},
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def exists_since(self, recipient_id: str, actor_id: str, type: str, since: datetime) -> bool:
        found = (
            self.db.query(Notification.id)
            .filter(
                Notification.recipient_id == recipient_id,
                Notification.actor_id == actor_id,
                Notification.type == type,
                Notification.created_at >= since,
            )
            .first()
        )
        return found is not None

    def get_user_notifications(
        self, user_id: str, limit: int, before: Optional[datetime] = None
    ) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.recipient_id == user_id)
        if before is not None:
            query = query.filter(Notification.created_at < before)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    def get_unread_count(self, user_id: str) -> int:
        count = (
            self.db.query(func.count(Notification.id))
            .filter(Notification.recipient_id == user_id, Notification.read_at.is_(None))
            .scalar()
        )
        return int(count or 0)

    def mark_as_read_for_user(self, user_id: str, notification_ids: Sequence[str]) -> int:
        if not notification_ids:
            return 0
        updated = (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == user_id,
                Notification.id.in_(list(notification_ids)),
                Notification.read_at.is_(None),
            )
            .update({"read_at": datetime.now(timezone.utc)}, synchronize_session="fetch")
        )
        return int(updated or 0)

    def mark_all_as_read(self, user_id: str) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.recipient_id == user_id, Notification.read_at.is_(None))
            .update({"read_at": datetime.now(timezone.utc)}, synchronize_session="fetch")
        )
        return int(updated or 0)
