# blverse/repositories/base_repository.py
"""
Base Repository Pattern for BLverse

Provides the foundation for all repository classes with:
- Common CRUD operations
- Type safety with generics
- Transaction support (managed by services)
- Idempotent "insert if absent" writes for tables guarded by unique constraints

Repositories never commit; the service layer owns transaction boundaries.
"""

import logging
from typing import Any, Dict, Generic, Optional, Sequence, Type, TypeVar, Union

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        bind = self.db.get_bind()
        return bind.dialect.name if bind is not None else ""

    def get_by_id(self, id: str) -> Optional[T]:
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, exc)
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def delete_entity(self, entity: T) -> None:
        try:
            self.db.delete(entity)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting {self.model.__name__}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete {self.model.__name__}: {str(e)}")

    def insert_ignoring_conflicts(
        self,
        values: Union[Dict[str, Any], Sequence[Dict[str, Any]]],
        model: Optional[Type[Any]] = None,
    ) -> int:
        """
        Insert rows unless they collide with an existing unique key.

        Emits ``INSERT .. ON CONFLICT DO NOTHING`` for the session's dialect.
        Returns how many rows were actually written, so a caller can tell
        "I created it" from "it was already there" without catching a
        storage-level uniqueness error.
        """
        target = model or self.model
        rows = [values] if isinstance(values, dict) else list(values)
        if not rows:
            return 0
        dialect_insert = postgresql.insert if self.dialect_name == "postgresql" else sqlite.insert
        stmt = dialect_insert(target).values(rows).on_conflict_do_nothing()
        try:
            result = self.db.execute(stmt)
            return max(result.rowcount or 0, 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting into {target.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to insert {target.__name__}: {str(e)}")
