# blverse/schemas/notification.py
"""Schemas for the in-app notification inbox."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class NotificationListResponse(StrictModel):
    items: List[Dict[str, Any]]
    next_before: Optional[str] = Field(None, serialization_alias="nextBefore")


class UnreadCountResponse(StrictModel):
    unread: int


class MarkNotificationsReadRequest(StrictRequestModel):
    ids: List[str] = Field(default_factory=list, max_length=500)


class UpdatedResponse(StrictModel):
    updated: int


class ProfileViewResponse(StrictModel):
    tracked: bool
