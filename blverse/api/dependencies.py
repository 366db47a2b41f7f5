# blverse/api/dependencies.py
"""
Dependency providers for routes.

The connection directory and the media store are created once in the
application lifespan and kept on ``app.state``; services are built per
request around the request-scoped session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from ..database import get_db
from ..services.engagement_service import EngagementService
from ..services.media_storage import MediaStore
from ..services.message_service import MessageService
from ..services.messaging.connection_directory import ConnectionDirectory
from ..services.notification_service import NotificationService


def get_connection_directory(connection: HTTPConnection) -> ConnectionDirectory:
    """Works for both HTTP requests and WebSocket handshakes."""
    return connection.app.state.connection_directory


def get_media_store(connection: HTTPConnection) -> MediaStore:
    return connection.app.state.media_store


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_engagement_service(
    db: Session = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
) -> EngagementService:
    return EngagementService(db, notifications)


def get_message_service(
    db: Session = Depends(get_db),
    directory: ConnectionDirectory = Depends(get_connection_directory),
    media_store: MediaStore = Depends(get_media_store),
) -> MessageService:
    return MessageService(db, directory, media_store)
