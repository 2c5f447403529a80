# File: medialib/repositories/base_repository.py

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository class providing common CRUD operations for all entities using
    modern SQLAlchemy select() syntax.

    Repositories flush but never commit; the calling service owns the
    transaction.

    Attributes:
        session (Session): The SQLAlchemy session for database operations
        model (Type[T]): The SQLAlchemy model class this repository manages
    """

    model: Optional[Type[T]] = None

    def __init__(self, session: Session, model: Optional[Type[T]] = None):
        self.session = session
        if model is not None:
            self.model = model

    def _get_model(self) -> Type[T]:
        """Ensures the model is set before use."""
        if self.model is None:
            raise TypeError(f"Repository model is not set for {self.__class__.__name__}")
        return self.model

    def get_by_id(self, id: int) -> Optional[T]:
        """
        Retrieve an entity by its primary key ID.

        Args:
            id (int): The primary key ID of the entity

        Returns:
            Optional[T]: The entity if found, None otherwise
        """
        model_class = self._get_model()
        stmt = select(model_class).where(getattr(model_class, "id") == id)
        return self.session.execute(stmt).scalar_one_or_none()

    def create(self, data: Dict[str, Any]) -> T:
        """
        Create a new entity and flush it so the primary key is assigned.

        Args:
            data (Dict[str, Any]): Dictionary containing entity field values

        Returns:
            T: The created entity
        """
        model_class = self._get_model()
        model_columns = {c.name for c in model_class.__table__.columns}
        filtered_data = {k: v for k, v in data.items() if k in model_columns}

        entity = model_class(**filtered_data)
        self.session.add(entity)
        self.session.flush()
        return entity

    def update(self, id: int, data: Dict[str, Any]) -> Optional[T]:
        """
        Update an existing entity.

        Args:
            id (int): The primary key ID of the entity to update
            data (Dict[str, Any]): Dictionary containing the fields to update

        Returns:
            Optional[T]: The updated entity if found, None otherwise
        """
        entity = self.get_by_id(id)
        if not entity:
            return None

        for key, value in data.items():
            if key in entity.__table__.columns.keys():
                setattr(entity, key, value)

        self.session.flush()
        return entity

    def delete(self, id: int) -> bool:
        """
        Hard-delete an entity by ID.

        Returns:
            bool: True if entity was deleted, False if not found
        """
        entity = self.get_by_id(id)
        if not entity:
            return False

        self.session.delete(entity)
        self.session.flush()
        return True
