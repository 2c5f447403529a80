# File: medialib/services/media_service.py
"""
Service for media listings and batch mutations.

Batch operations run in one transaction with a savepoint per element: a
failing element is rolled back on its own and reported, the rest is
committed. Callers must look at the failed list, not only the status code.

Tag add/remove read the comma-joined list, compute the new list in process
and write it back. Two concurrent writers on the same row can lose an update.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.core.exceptions import EntityNotFoundException, ValidationException
from medialib.core.security import AuthContext
from medialib.db.models.media import Media
from medialib.repositories.media_repository import (
    SORT_ORDERS,
    SORTABLE_COLUMNS,
    MediaQuery,
    MediaRepository,
)
from medialib.repositories.tag_filters import parse_tag_list
from medialib.repositories.tag_repository import TagRepository
from medialib.schemas.media import MediaCreate, MediaDeleteItem, MediaUpdate
from medialib.services.base_service import BaseService, page_envelope
from medialib.services.batch import BatchResult
from medialib.services.file_storage_service import FileStorageService
from medialib.services.url_service import rewrite_many

logger = logging.getLogger(__name__)


def split_tags(raw: Optional[str]) -> List[str]:
    """Split a comma-joined tag string, trimming and dropping empties, case kept."""
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


def merge_tags(existing: List[str], added: List[str]) -> List[str]:
    """Order-preserving union, compared case-insensitively."""
    merged = list(existing)
    seen = {t.lower() for t in existing}
    for tag in added:
        if tag.lower() not in seen:
            merged.append(tag)
            seen.add(tag.lower())
    return merged


def subtract_tags(existing: List[str], removed: List[str]) -> List[str]:
    """Order-preserving difference, compared case-insensitively."""
    drop = {t.lower() for t in removed}
    return [t for t in existing if t.lower() not in drop]


class MediaService(BaseService[Media]):
    """
    Service for media business operations.
    """

    def __init__(
        self,
        session: Session,
        cache_service=None,
        storage: Optional[FileStorageService] = None,
    ):
        super().__init__(session, MediaRepository(session), cache_service)
        self.tag_repository = TagRepository(session)
        self.storage = storage or FileStorageService(settings.MEDIA_ROOT)

    # Listing

    def list_media(
        self,
        auth: AuthContext,
        page: int = 1,
        limit: int = 10,
        tags: Optional[str] = None,
        tag_exclude: Optional[str] = None,
        match_all_tags: bool = False,
        file_type: Optional[str] = None,
        is_protected: Optional[bool] = None,
        is_random: bool = False,
        sort_by: str = "id",
        sort_order: str = "asc",
    ) -> Dict[str, Any]:
        """
        One page of visible media with local paths rewritten to URLs.

        Args:
            auth: Caller; non-admins are always limited to unprotected media
            tags: Comma-separated tags to require (any, or all with match_all_tags)
            tag_exclude: Comma-separated tags that must not be present
            file_type: Comma-separated file types
            is_protected: Admin-only filter, ignored for everyone else
            is_random: Random order instead of sort_by/sort_order

        Returns:
            ``{data, next, prev, count}``

        Raises:
            ValidationException: If the sort column or direction is not allowed
        """
        if sort_by not in SORTABLE_COLUMNS:
            raise ValidationException(
                f"Invalid sort_by '{sort_by}'",
                {"sort_by": [f"Must be one of {', '.join(SORTABLE_COLUMNS)}"]},
            )
        if sort_order not in SORT_ORDERS:
            raise ValidationException(
                f"Invalid sort_order '{sort_order}'",
                {"sort_order": ["Must be 'asc' or 'desc'"]},
            )

        query = MediaQuery(
            page=page,
            limit=limit,
            tags=parse_tag_list(tags),
            tag_exclude=parse_tag_list(tag_exclude),
            match_all_tags=match_all_tags,
            file_types=parse_tag_list(file_type),
            is_protected=auth.protected_filter(is_protected),
            is_random=is_random,
            sort_by=sort_by,
            sort_order=sort_order,
            tag_source=settings.TAG_MATCH_SOURCE,
        )
        rows, total = self.repository.list_media(query)
        data = rewrite_many(media.to_dict() for media in rows)
        return page_envelope(data, page, limit, total)

    # Batch mutations

    def _sync_media_tags(self, media: Media) -> None:
        names = list(dict.fromkeys(media.tag_list))
        self.tag_repository.ensure_tags(names, is_hidden=settings.POPULATE_TAGS_HIDDEN)
        self.repository.replace_media_tags(media.id, names)

    def insert_batch(self, items: List[Any]) -> BatchResult:
        """
        Insert media rows; elements are identified by ``file_path``.

        A duplicate path (live or soft-deleted) fails that element only.
        """

        def apply(item: Any) -> None:
            if not isinstance(item, dict):
                raise ValidationException("Media entry must be an object")
            data = MediaCreate.model_validate(item).model_dump(exclude_none=True)
            media = self.repository.create(data)
            self._sync_media_tags(media)

        result = self.run_batch(items, apply, describe=_describe_path)
        logger.info(
            f"Batch insert: {len(result.committed)} inserted, {len(result.failed)} failed"
        )
        self.invalidate_cache()
        return result

    def update_batch(self, items: List[Any]) -> BatchResult:
        """
        Update media rows by ``id``; only provided, updatable fields change.
        """

        def apply(item: Any) -> None:
            if not isinstance(item, dict):
                raise ValidationException("Media entry must be an object")
            changes = MediaUpdate.model_validate(item)
            media = self.repository.get_live(changes.id)
            if media is None:
                raise EntityNotFoundException("Media", changes.id)
            data = changes.model_dump(exclude_unset=True, exclude={"id"})
            self.repository.update(media.id, data)
            if "tags" in data:
                self._sync_media_tags(media)

        result = self.run_batch(items, apply, describe=_describe_id)
        logger.info(
            f"Batch update: {len(result.committed)} updated, {len(result.failed)} failed"
        )
        self.invalidate_cache()
        return result

    def delete_batch(self, items: List[Any]) -> BatchResult:
        """
        Soft-delete media rows by ``file_path``. A path without a live row fails.
        """

        def apply(item: Any) -> None:
            if not isinstance(item, dict):
                raise ValidationException("Media entry must be an object")
            target = MediaDeleteItem.model_validate(item)
            media = self.repository.get_by_file_path(target.file_path)
            if media is None:
                raise EntityNotFoundException("Media", target.file_path)
            media.soft_delete()
            self.session.flush()

        result = self.run_batch(items, apply, describe=_describe_path)
        logger.info(
            f"Batch delete: {len(result.committed)} deleted, {len(result.failed)} failed"
        )
        self.invalidate_cache()
        return result

    def _retag_batch(self, ids: List[int], tags: str, add: bool) -> BatchResult:
        requested = split_tags(tags)

        def apply(media_id: int) -> None:
            media = self.repository.get_live(media_id)
            if media is None:
                raise EntityNotFoundException("Media", media_id)
            if add:
                updated = merge_tags(media.tag_list, requested)
            else:
                updated = subtract_tags(media.tag_list, requested)
            media.tags = ",".join(updated)
            self.session.flush()
            self._sync_media_tags(media)

        return self.run_batch(ids, apply, describe=str)

    def add_tags_batch(self, ids: List[int], tags: str) -> BatchResult:
        """Append tags to every media in ``ids``, keeping existing order."""
        result = self._retag_batch(ids, tags, add=True)
        logger.info(f"Batch tag add '{tags}': {len(result.failed)} of {len(ids)} failed")
        self.invalidate_cache()
        return result

    def remove_tags_batch(self, ids: List[int], tags: str) -> BatchResult:
        """Remove tags from every media in ``ids``."""
        result = self._retag_batch(ids, tags, add=False)
        logger.info(
            f"Batch tag removal '{tags}': {len(result.failed)} of {len(ids)} failed"
        )
        self.invalidate_cache()
        return result

    def set_protected_batch(self, ids: List[int], is_protected: bool) -> BatchResult:
        def apply(media_id: int) -> None:
            media = self.repository.get_live(media_id)
            if media is None:
                raise EntityNotFoundException("Media", media_id)
            media.is_protected = is_protected
            self.session.flush()

        result = self.run_batch(ids, apply, describe=str)
        self.invalidate_cache()
        return result

    # Single-row maintenance

    def delete_media(self, media_id: int, delete_with_data: bool = False) -> Dict[str, Any]:
        """
        Soft-delete one media, or remove it together with its files.

        File removal is best effort; unlink errors are logged and ignored.

        Raises:
            EntityNotFoundException: If there is no such media
        """
        with self.transaction():
            media = self.repository.get_by_id(media_id)
            if media is None or (media.is_deleted and not delete_with_data):
                raise EntityNotFoundException("Media", media_id)

            paths = [
                media.file_path,
                media.thumbnail_path,
                media.thumbnail_md,
                media.thumbnail_lg,
            ]
            is_local = media.is_local
            if delete_with_data:
                self.repository.delete(media_id)
            else:
                media.soft_delete()

        removed: List[str] = []
        if delete_with_data and is_local:
            removed = self.storage.remove_files(paths)
        logger.info(
            f"Deleted media {media_id} (with data: {delete_with_data}, "
            f"{len(removed)} files removed)"
        )
        self.invalidate_cache()
        return {"id": media_id, "deletedWithData": delete_with_data, "removedFiles": removed}

    def check_files(self, delete_missing: bool = False) -> Dict[str, Any]:
        """
        Find live local media whose file no longer exists under the media root.

        Args:
            delete_missing: Soft-delete the rows that were found missing

        Returns:
            ``{checkedCount, missingCount, deletedCount, missing}``
        """
        rows = self.repository.list_local_live()
        missing = [m for m in rows if not self.storage.exists(m.file_path)]

        deleted = 0
        if delete_missing and missing:
            with self.transaction():
                for media in missing:
                    media.soft_delete()
                    deleted += 1
            self.invalidate_cache()

        logger.info(f"File check: {len(missing)} of {len(rows)} media missing on disk")
        return {
            "checkedCount": len(rows),
            "missingCount": len(missing),
            "deletedCount": deleted,
            "missing": [{"id": m.id, "file_path": m.file_path} for m in missing],
        }


def _describe_path(item: Any) -> str:
    return str(item.get("file_path")) if isinstance(item, dict) else repr(item)


def _describe_id(item: Any) -> str:
    return str(item.get("id")) if isinstance(item, dict) else repr(item)
