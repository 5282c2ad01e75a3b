"""Base repository with shared owner-scoped get-by-ID patterns.

Every row in this store belongs to exactly one owner. Lookups take the
owner alongside the primary key so that a row owned by someone else is
indistinguishable from a missing one. Subclasses specify model_class and
not_found_error; the base provides the common implementations.
"""

from typing import TypeVar, Generic, Optional, Type
from sqlalchemy.orm import Session, Query

from ..database import Base
from ..exceptions import NotFoundError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for owner-scoped SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Document)
        not_found_error: Exception class raised by get_owned, called with the id
    """

    model_class: Type[ModelT]
    not_found_error: Type[NotFoundError]

    def __init__(self, db: Session):
        self.db = db

    def _owned_query(self, owner_id: str) -> Query:
        return self.db.query(self.model_class).filter(self.model_class.owner_id == owner_id)

    def get_owned(self, entity_id: str, owner_id: str) -> ModelT:
        """Get entity by primary key for *owner_id*. Raises not_found_error otherwise."""
        entity = self.get_owned_optional(entity_id, owner_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity

    def get_owned_optional(self, entity_id: str, owner_id: str) -> Optional[ModelT]:
        """Get entity by primary key for *owner_id*, or None."""
        return self._owned_query(owner_id).filter(self.model_class.id == entity_id).first()
