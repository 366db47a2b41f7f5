# blverse/models/user.py
"""
User identity as seen by the realtime core.

Credentials and profile editing live outside this service; the core only
needs a stable id, a handle and a summary for list views.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String
import ulid

from ..database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    username = Column(String(30), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    display_name = Column(String(100), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    def summary(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name or self.username,
            "avatarUrl": self.avatar_url,
        }

    def __repr__(self) -> str:
        return f"<User {self.username}>"
