"""
Base repository with generic CRUD operations.
"""

import uuid
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from repobook.models.db import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic repository providing CRUD helpers for a single model."""

    def __init__(self, model: Type[ModelType], session: Session):
        self.model = model
        self.session = session

    def get(self, id: uuid.UUID) -> Optional[ModelType]:
        """
        Get a record by primary key.

        Args:
            id: Record UUID

        Returns:
            Model instance or None
        """
        return self.session.get(self.model, id)

    def get_all(self, limit: Optional[int] = None, offset: int = 0) -> List[ModelType]:
        """
        Get all records.

        Args:
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List of model instances
        """
        query = self.session.query(self.model).offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record and flush it so generated fields are populated.

        Args:
            **kwargs: Column values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        self.session.flush()
        return instance

    def update(self, id: uuid.UUID, **kwargs: Any) -> Optional[ModelType]:
        """
        Update a record by primary key.

        Args:
            id: Record UUID
            **kwargs: Column values to set

        Returns:
            Updated model instance or None if not found
        """
        instance = self.get(id)
        if instance is None:
            return None
        for key, value in kwargs.items():
            setattr(instance, key, value)
        self.session.flush()
        return instance

    def delete(self, id: uuid.UUID) -> bool:
        """
        Delete a record by primary key.

        Returns:
            True if a record was deleted
        """
        instance = self.get(id)
        if instance is None:
            return False
        self.session.delete(instance)
        self.session.flush()
        return True

    def count(self) -> int:
        """Count all records."""
        return self.session.execute(
            select(func.count()).select_from(self.model)
        ).scalar_one()
