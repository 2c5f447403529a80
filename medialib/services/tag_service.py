# File: medialib/services/tag_service.py
"""
Service for managing tags in the media library.

This module covers the tag registry: listing, editing, and the jobs that
reconcile the legacy comma-joined ``media.tags`` column with the registry
and with the normalized ``media_tags`` table.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.core.exceptions import EntityNotFoundException, ValidationException
from medialib.core.security import AuthContext
from medialib.db.models.tag import Tag
from medialib.repositories.media_repository import MediaRepository
from medialib.repositories.tag_repository import (
    TAG_SORTABLE_COLUMNS,
    TagQuery,
    TagRepository,
)
from medialib.schemas.tag import TagUpdate
from medialib.services.base_service import BaseService, page_envelope
from medialib.services.url_service import pick_thumbnail, rewrite_media_paths

logger = logging.getLogger(__name__)


class TagService(BaseService[Tag]):
    """
    Service for tag business operations.
    """

    def __init__(self, session: Session, cache_service=None):
        """
        Initialize the service with dependencies.

        Args:
            session: Database session for persistence operations
            cache_service: Optional cache invalidated after writes
        """
        super().__init__(session, TagRepository(session), cache_service)
        self.media_repository = MediaRepository(session)

    # Listing

    def list_tags(
        self,
        auth: AuthContext,
        page: int = 1,
        limit: int = 20,
        is_protected: Optional[bool] = None,
        is_hidden: bool = False,
        type: Optional[str] = None,
        sort_by: str = "id",
        sort_order: str = "asc",
        check_media: bool = False,
        popularity: bool = False,
    ) -> Dict[str, Any]:
        """
        Page through visible tags.

        Args:
            auth: Caller; non-admins only see unprotected tags
            check_media: Attach the most recent live media thumbnail per tag
            popularity: Order by live media count and attach ``media_count``

        Returns:
            ``{data, next, prev, count}``

        Raises:
            ValidationException: If the sort column or direction is not allowed
        """
        if sort_by not in TAG_SORTABLE_COLUMNS:
            raise ValidationException(
                f"Invalid sort_by '{sort_by}'",
                {"sort_by": [f"Must be one of {', '.join(TAG_SORTABLE_COLUMNS)}"]},
            )
        if sort_order not in ("asc", "desc"):
            raise ValidationException(
                f"Invalid sort_order '{sort_order}'",
                {"sort_order": ["Must be 'asc' or 'desc'"]},
            )

        query = TagQuery(
            page=page,
            limit=limit,
            is_protected=auth.protected_filter(is_protected),
            is_hidden=is_hidden,
            type=type,
            sort_by=sort_by,
            sort_order=sort_order,
            popularity=popularity,
        )
        rows, total = self.repository.list_tags(query)

        data = []
        for tag, media_count in rows:
            entry = tag.to_dict()
            if popularity:
                entry["media_count"] = media_count
            if check_media:
                media = self.repository.latest_media_for_tag(
                    tag.name, include_protected=auth.is_admin
                )
                if media is not None:
                    entry["media_id"] = media.id
                    entry["thumbnail"] = pick_thumbnail(
                        rewrite_media_paths(media.to_dict())
                    )
                else:
                    entry["media_id"] = None
                    entry["thumbnail"] = None
            data.append(entry)

        return page_envelope(data, page, limit, total)

    def update_tag(self, tag_id: int, changes: TagUpdate) -> Dict[str, Any]:
        """
        Change a tag's type, flags or parent.

        Raises:
            EntityNotFoundException: If the tag (or the new parent) is missing
            ValidationException: If the tag would become its own parent
        """
        with self.transaction():
            tag = self.repository.get_by_id(tag_id)
            if tag is None or tag.is_deleted:
                raise EntityNotFoundException("Tag", tag_id)

            data = changes.model_dump(exclude_unset=True)
            parent = data.get("parent")
            if parent is not None:
                if parent == tag_id:
                    raise ValidationException(
                        "A tag cannot be its own parent", {"parent": ["Self reference"]}
                    )
                if self.repository.get_by_id(parent) is None:
                    raise EntityNotFoundException("Tag", parent)

            self.repository.update(tag_id, data)
            result = tag.to_dict()

        logger.info(f"Updated tag {tag_id}: {data}")
        self.invalidate_cache()
        return result

    def delete_tag(self, tag_id: int) -> None:
        """Soft-delete a tag."""
        with self.transaction():
            tag = self.repository.get_by_id(tag_id)
            if tag is None or tag.is_deleted:
                raise EntityNotFoundException("Tag", tag_id)
            tag.soft_delete()
        logger.info(f"Soft-deleted tag {tag_id} ({tag.name})")
        self.invalidate_cache()

    # Reconciliation jobs

    def populate_tags(self, start_id: int = 0) -> Dict[str, Any]:
        """
        Register every tag found in live media with ``id >= start_id``.

        New names are inserted (hidden according to POPULATE_TAGS_HIDDEN) and
        soft-deleted names that reappear are restored. Each change is
        committed on its own, so an interrupted run is simply re-run.

        Returns:
            ``{createdCount, restoredCount, createdTags, restoredTags}``
        """
        names: Dict[str, None] = {}
        for media in self.media_repository.iter_live(start_id):
            for name in media.tag_list:
                names.setdefault(name)

        existing = self.repository.get_by_names(names)
        created: List[str] = []
        restored: List[str] = []
        for name in names:
            tag = existing.get(name)
            if tag is None:
                with self.transaction():
                    self.repository.create(
                        {"name": name, "is_hidden": settings.POPULATE_TAGS_HIDDEN}
                    )
                created.append(name)
            elif tag.deleted_at is not None:
                with self.transaction():
                    tag.restore()
                restored.append(name)

        logger.info(
            f"Tag population from id {start_id}: "
            f"{len(created)} created, {len(restored)} restored"
        )
        if created or restored:
            self.invalidate_cache()
        return {
            "createdCount": len(created),
            "restoredCount": len(restored),
            "createdTags": created,
            "restoredTags": restored,
        }

    def sync_media_tags(self, start_id: int = 0) -> Dict[str, Any]:
        """
        Backfill ``media_tags`` from the comma-joined column.

        Only names present in the registry are linked; existing pairs are
        left alone.

        Returns:
            ``{scannedCount, insertedCount}``
        """
        registry = {tag.name for tag in self.repository.list_live()}
        pairs = []
        scanned = 0
        for media in self.media_repository.iter_live(start_id):
            scanned += 1
            pairs.extend((media.id, name) for name in media.tag_list if name in registry)

        with self.transaction():
            inserted = self.media_repository.add_media_tags(pairs)

        logger.info(f"media_tags backfill: {inserted} links added over {scanned} media")
        if inserted:
            self.invalidate_cache()
        return {"scannedCount": scanned, "insertedCount": inserted}

    def check_tags(self) -> Dict[str, Any]:
        """
        Soft-delete live tags that no live media carries.

        Membership uses the comma-list matcher, so a tag that only appears
        as a substring of another tag still counts as used.

        Returns:
            ``{checkedCount, deletedCount, deletedTags}``
        """
        deleted: List[str] = []
        with self.transaction():
            tags = self.repository.list_live()
            for tag in tags:
                if self.repository.count_live_media_with_tag(tag.name) == 0:
                    tag.soft_delete()
                    deleted.append(tag.name)

        logger.info(f"Tag check: {len(deleted)} of {len(tags)} tags soft-deleted")
        if deleted:
            self.invalidate_cache()
        return {
            "checkedCount": len(tags),
            "deletedCount": len(deleted),
            "deletedTags": deleted,
        }
