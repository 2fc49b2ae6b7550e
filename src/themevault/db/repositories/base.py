"""
Base repository with common CRUD operations.
"""

import uuid
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from themevault.models.db import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic repository providing create/get/count for a model."""

    def __init__(self, model: Type[ModelType], session: Session):
        self.model = model
        self.session = session

    def create(self, **kwargs: Any) -> ModelType:
        """
        Create and flush a new instance.

        Args:
            **kwargs: Column values

        Returns:
            Created instance (with primary key assigned)
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        self.session.flush()
        return instance

    def get(self, id: uuid.UUID) -> Optional[ModelType]:
        """
        Get an instance by primary key.

        Args:
            id: Primary key

        Returns:
            Instance or None
        """
        return self.session.get(self.model, id)

    def count(self) -> int:
        """Count all instances."""
        return self.session.query(self.model).count()
