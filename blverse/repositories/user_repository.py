"""Read access to users for identity checks."""

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_active(self, user_id: str) -> User | None:
        user = self.get_by_id(user_id)
        if user is None or not user.is_active:
            return None
        return user
