# File: medialib/services/base_service.py

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generic, Iterable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medialib.core.exceptions import MediaLibException
from medialib.repositories.base_repository import BaseRepository
from medialib.services.batch import BatchResult

T = TypeVar("T")
logger = logging.getLogger(__name__)


def page_envelope(data: list, page: int, limit: int, count: int) -> Dict[str, Any]:
    """
    Wrap one page of rows with its navigation links.

    ``next`` is set while more rows exist after this page; ``prev`` is set for
    every page after the first.
    """
    return {
        "data": data,
        "next": page + 1 if page * limit < count else None,
        "prev": page - 1 if page > 1 else None,
        "count": count,
    }


class BaseService(Generic[T]):
    """
    Base service for all media library services.

    Provides common functionality including:
    - Transaction management
    - Batches with per-element savepoints
    - Best-effort cache invalidation
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[BaseRepository] = None,
        cache_service=None,
    ):
        """
        Initialize service with dependencies.

        Args:
            session: Database session for persistence operations
            repository: Repository instance for the service's main entity
            cache_service: Optional cache service invalidated on writes
        """
        self.session = session
        self.repository = repository
        self.cache_service = cache_service

    @contextmanager
    def transaction(self):
        """
        Provide a transactional scope around operations.

        Raises:
            Exception: Any exception that occurs during transaction execution
        """
        try:
            yield
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Transaction failed: {str(e)}", exc_info=True)
            raise

    def run_batch(
        self,
        items: Iterable[T],
        apply: Callable[[T], Any],
        describe: Callable[[T], Any] = repr,
    ) -> BatchResult[T]:
        """
        Apply ``apply`` to every item inside one transaction.

        Each item runs in its own SAVEPOINT. A failing item is rolled back to
        its savepoint and recorded; the others stay applied and are committed
        together at the end.

        Args:
            items: Batch elements
            apply: Mutation for one element; raising marks it failed
            describe: Renders an element for log messages

        Returns:
            BatchResult with committed and failed elements
        """
        result: BatchResult[T] = BatchResult()
        with self.transaction():
            for item in items:
                savepoint = self.session.begin_nested()
                try:
                    apply(item)
                    savepoint.commit()
                except (MediaLibException, SQLAlchemyError, ValueError, TypeError) as e:
                    savepoint.rollback()
                    reason = e.message if isinstance(e, MediaLibException) else str(e)
                    logger.warning(f"Batch element {describe(item)} failed: {reason}")
                    result.add_failure(item, reason)
                else:
                    result.add_committed(item)
        return result

    def invalidate_cache(self) -> None:
        """Drop cached listings after a write. Never raises."""
        if self.cache_service is not None:
            self.cache_service.invalidate_listings()
