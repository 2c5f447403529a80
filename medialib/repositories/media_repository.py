# File: medialib/repositories/media_repository.py
"""
Repository for Media entities.

Holds the listing query builder (visibility, tag filters, file types,
allow-listed sort, pagination) and the ``media_tags`` synchronization used
by the batch operations.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import asc, delete, desc, func, insert, select
from sqlalchemy.orm import Session

from medialib.db.models.media import LOCAL_SERVER, Media
from medialib.db.models.tag import MediaTag
from medialib.repositories.base_repository import BaseRepository
from medialib.repositories.tag_filters import (
    comma_list_exclusion,
    comma_list_filter,
    join_table_exclusion,
    join_table_filter,
)

logger = logging.getLogger(__name__)

# Columns a caller may sort listings by
SORTABLE_COLUMNS = {
    "id": Media.id,
    "title": Media.title,
    "file_path": Media.file_path,
    "file_type": Media.file_type,
    "duration": Media.duration,
    "created_at": Media.created_at,
}
SORT_ORDERS = ("asc", "desc")

# Fields the batch update may change
UPDATABLE_FIELDS = (
    "title",
    "file_path",
    "file_type",
    "duration",
    "tags",
    "thumbnail_path",
    "thumbnail_md",
    "thumbnail_lg",
    "server_location",
    "optimized_path",
    "is_protected",
    "protected_by",
    "user_protecting",
    "created_at",
)

TAG_SOURCE_JOIN_TABLE = "media_tags"
TAG_SOURCE_COMMA_LIST = "comma_list"


@dataclass
class MediaQuery:
    """Resolved listing parameters. ``is_protected=None`` means no filter."""

    page: int = 1
    limit: int = 10
    tags: List[str] = field(default_factory=list)
    tag_exclude: List[str] = field(default_factory=list)
    match_all_tags: bool = False
    file_types: List[str] = field(default_factory=list)
    is_protected: Optional[bool] = False
    is_random: bool = False
    sort_by: str = "id"
    sort_order: str = "asc"
    tag_source: str = TAG_SOURCE_JOIN_TABLE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class MediaRepository(BaseRepository[Media]):
    """
    Repository for Media entity operations.
    """

    model = Media

    def __init__(self, session: Session):
        super().__init__(session, Media)

    # Listing

    def _tag_conditions(self, query: MediaQuery) -> list:
        conditions = []
        if query.tag_source == TAG_SOURCE_COMMA_LIST:
            include = comma_list_filter(Media.tags, query.tags, query.match_all_tags)
            exclude = comma_list_exclusion(Media.tags, query.tag_exclude)
        else:
            include = join_table_filter(Media.id, query.tags, query.match_all_tags)
            exclude = join_table_exclusion(Media.id, query.tag_exclude)
        if include is not None:
            conditions.append(include)
        if exclude is not None:
            conditions.append(exclude)
        return conditions

    def listing_conditions(self, query: MediaQuery) -> list:
        """WHERE clauses shared by the count and the data read."""
        conditions = [Media.deleted_at.is_(None)]
        if query.is_protected is not None:
            conditions.append(Media.is_protected == query.is_protected)
        if query.file_types:
            conditions.append(Media.file_type.in_(query.file_types))
        conditions.extend(self._tag_conditions(query))
        return conditions

    def _ordering(self, query: MediaQuery) -> list:
        if query.is_random:
            return [func.random()]
        column = SORTABLE_COLUMNS[query.sort_by]
        direction = desc if query.sort_order == "desc" else asc
        if query.sort_by == "id":
            return [direction(column)]
        return [direction(column), direction(Media.id)]

    def count_media(self, query: MediaQuery) -> int:
        stmt = select(func.count(Media.id)).where(*self.listing_conditions(query))
        return self.session.execute(stmt).scalar_one()

    def list_media(self, query: MediaQuery) -> Tuple[List[Media], int]:
        """
        Run the listing as two separate reads: total count, then one page.

        Returns:
            Tuple of (rows on the requested page, total matching rows)
        """
        total = self.count_media(query)
        stmt = (
            select(Media)
            .where(*self.listing_conditions(query))
            .order_by(*self._ordering(query))
            .offset(query.offset)
            .limit(query.limit)
        )
        rows = list(self.session.execute(stmt).scalars().all())
        logger.debug(f"Media listing page {query.page}: {len(rows)} of {total}")
        return rows, total

    # Lookups

    def get_by_file_path(self, file_path: str, live_only: bool = True) -> Optional[Media]:
        stmt = select(Media).where(Media.file_path == file_path)
        if live_only:
            stmt = stmt.where(Media.deleted_at.is_(None))
        return self.session.execute(stmt).scalars().first()

    def get_live(self, media_id: int) -> Optional[Media]:
        stmt = select(Media).where(Media.id == media_id, Media.deleted_at.is_(None))
        return self.session.execute(stmt).scalar_one_or_none()

    def existing_file_paths(self, paths: Iterable[str]) -> set:
        """File paths already present in the table, deleted rows included."""
        paths = list(paths)
        if not paths:
            return set()
        stmt = select(Media.file_path).where(Media.file_path.in_(paths))
        return set(self.session.execute(stmt).scalars().all())

    def iter_live(self, start_id: int = 0, batch_size: int = 500):
        """Yield live media ordered by id, starting at ``start_id``, in batches."""
        last_id = start_id - 1
        while True:
            stmt = (
                select(Media)
                .where(Media.deleted_at.is_(None), Media.id > last_id)
                .order_by(Media.id)
                .limit(batch_size)
            )
            batch = list(self.session.execute(stmt).scalars().all())
            if not batch:
                break
            yield from batch
            last_id = batch[-1].id
            if len(batch) < batch_size:
                break

    def list_local_live(self) -> List[Media]:
        stmt = (
            select(Media)
            .where(Media.deleted_at.is_(None), Media.server_location == LOCAL_SERVER)
            .order_by(Media.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    # media_tags synchronization

    def get_media_tag_names(self, media_id: int) -> List[str]:
        stmt = (
            select(MediaTag.tag_name)
            .where(MediaTag.media_id == media_id)
            .order_by(MediaTag.tag_name)
        )
        return list(self.session.execute(stmt).scalars().all())

    def replace_media_tags(self, media_id: int, tag_names: Iterable[str]) -> None:
        """
        Make ``media_tags`` for one media hold exactly ``tag_names``.

        Every name must already exist in the tag registry.
        """
        wanted: Dict[str, None] = dict.fromkeys(tag_names)
        current = set(self.get_media_tag_names(media_id))

        stale = [name for name in current if name not in wanted]
        if stale:
            self.session.execute(
                delete(MediaTag).where(
                    MediaTag.media_id == media_id, MediaTag.tag_name.in_(stale)
                )
            )
        missing = [name for name in wanted if name not in current]
        if missing:
            self.session.execute(
                insert(MediaTag),
                [{"media_id": media_id, "tag_name": name} for name in missing],
            )

    def add_media_tags(self, pairs: List[Tuple[int, str]]) -> int:
        """Insert (media_id, tag_name) pairs that are not present yet."""
        if not pairs:
            return 0
        media_ids = {media_id for media_id, _ in pairs}
        stmt = select(MediaTag.media_id, MediaTag.tag_name).where(
            MediaTag.media_id.in_(media_ids)
        )
        existing = {(row.media_id, row.tag_name) for row in self.session.execute(stmt)}
        new_rows = [
            {"media_id": media_id, "tag_name": name}
            for media_id, name in dict.fromkeys(pairs)
            if (media_id, name) not in existing
        ]
        if new_rows:
            self.session.execute(insert(MediaTag), new_rows)
        return len(new_rows)
