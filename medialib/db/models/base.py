# File: medialib/db/models/base.py
"""
Base models and mixins for the media library.

This module provides the foundation for all database models:
- Base SQLAlchemy model class
- Mixins for timestamps and soft deletion
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, MetaData
from sqlalchemy.orm import declarative_base

# Constraint names stay stable across SQLite and PostgreSQL, Alembic relies on them
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Create the SQLAlchemy base
Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Mixin providing automatic timestamp functionality.

    Adds created_at and updated_at timestamps that are automatically
    maintained when records are created or updated.
    """

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class SoftDeleteMixin:
    """
    Mixin for rows that are marked inactive instead of removed.

    A row is live while ``deleted_at`` is NULL.
    """

    deleted_at = Column(DateTime, nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()

    def restore(self) -> None:
        self.deleted_at = None


class AbstractBase(Base):
    """
    Abstract base class for entities with an integer surrogate key.

    Attributes:
        id: Primary key ID (auto-incremented)
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the model instance to a dictionary.

        Returns:
            Dictionary representation of the model instance
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.name] = value
        return result
