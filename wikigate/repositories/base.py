"""Base repository with shared get-by-ID patterns.

Subclasses specify model_class, id_column, and not_found_error; the base
provides get_by_id / get_by_id_optional / get_many.

Override _base_query() to apply default filters.
"""

from typing import TypeVar, Generic, Iterable, Optional, Type
from sqlalchemy.orm import Session, Query

from ..database import Base
from ..exceptions import WikiException

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Page)
        id_column:       Name of the primary-key column (default "id")
        not_found_error: Exception class to raise from get_by_id
    """

    model_class: Type[ModelT]
    id_column: str = "id"
    not_found_error: Type[WikiException]

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        """Base query for the getters. Override to apply default filters."""
        return self.db.query(self.model_class)

    def get_by_id(self, entity_id) -> ModelT:
        """Get entity by primary key. Raises not_found_error if missing."""
        col = getattr(self.model_class, self.id_column)
        entity = self._base_query().filter(col == entity_id).first()
        if not entity:
            raise self.not_found_error(entity_id)
        return entity

    def get_by_id_optional(self, entity_id) -> Optional[ModelT]:
        """Get entity by primary key, or None if not found."""
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col == entity_id).first()

    def get_many(self, entity_ids: Iterable) -> list[ModelT]:
        """Get every entity whose key is in *entity_ids* in a single query.

        Missing ids are silently absent from the result.
        """
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return []
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col.in_(ids)).all()
