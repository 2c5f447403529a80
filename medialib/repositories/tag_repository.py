# File: medialib/repositories/tag_repository.py
"""
Repository for Tag entities.

This module provides data access operations for the tag registry: listing
with popularity, registry maintenance used by the population jobs, and the
co-occurrence queries behind tag recommendations.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import asc, desc, func, select
from sqlalchemy.orm import Session, aliased

from medialib.db.models.media import Media
from medialib.db.models.tag import TAG_TYPE_ALBUM, TAG_TYPE_PERSON, MediaTag, Tag
from medialib.repositories.base_repository import BaseRepository
from medialib.repositories.tag_filters import comma_list_tag_clause

logger = logging.getLogger(__name__)

TAG_SORTABLE_COLUMNS = {
    "id": Tag.id,
    "name": Tag.name,
    "type": Tag.type,
    "created_at": Tag.created_at,
}


@dataclass
class TagQuery:
    """Resolved tag listing parameters. ``is_protected=None`` means no filter."""

    page: int = 1
    limit: int = 20
    is_protected: Optional[bool] = False
    is_hidden: bool = False
    type: Optional[str] = None
    sort_by: str = "id"
    sort_order: str = "asc"
    popularity: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class RelatedTag:
    """One co-occurrence row: a tag, its representative media and a count."""

    name: str
    type: Optional[str]
    media_id: Optional[int]
    count: int


class TagRepository(BaseRepository[Tag]):
    """
    Repository for Tag entity operations.
    """

    model = Tag

    def __init__(self, session: Session):
        super().__init__(session, Tag)

    # Registry lookups

    def get_by_name(self, name: str) -> Optional[Tag]:
        """
        Get a tag by its exact name, soft-deleted rows included.
        """
        stmt = select(Tag).where(Tag.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_name_ci(self, name: str) -> Optional[Tag]:
        """Case-insensitive lookup preferring live rows."""
        stmt = (
            select(Tag)
            .where(func.lower(Tag.name) == name.strip().lower())
            .order_by(Tag.deleted_at.is_not(None), Tag.id)
        )
        return self.session.execute(stmt).scalars().first()

    def get_by_names(self, names: Iterable[str]) -> Dict[str, Tag]:
        names = list(names)
        if not names:
            return {}
        stmt = select(Tag).where(Tag.name.in_(names))
        return {tag.name: tag for tag in self.session.execute(stmt).scalars().all()}

    def ensure_tags(
        self, names: Iterable[str], is_hidden: bool = True
    ) -> Tuple[List[str], List[str]]:
        """
        Make every name a live registry entry.

        Absent names are inserted, soft-deleted ones are restored.

        Returns:
            Tuple of (created names, restored names)
        """
        names = list(dict.fromkeys(n for n in names if n))
        existing = self.get_by_names(names)
        created, restored = [], []
        for name in names:
            tag = existing.get(name)
            if tag is None:
                self.session.add(Tag(name=name, is_hidden=is_hidden))
                created.append(name)
            elif tag.deleted_at is not None:
                tag.restore()
                restored.append(name)
        if created or restored:
            self.session.flush()
        return created, restored

    def list_live(self) -> List[Tag]:
        stmt = select(Tag).where(Tag.deleted_at.is_(None)).order_by(Tag.id)
        return list(self.session.execute(stmt).scalars().all())

    def count_live_media_with_tag(self, name: str) -> int:
        """Live media carrying the tag according to the comma-list matcher."""
        stmt = select(func.count(Media.id)).where(
            Media.deleted_at.is_(None), comma_list_tag_clause(Media.tags, name)
        )
        return self.session.execute(stmt).scalar_one()

    # Listing

    def _listing_conditions(self, query: TagQuery) -> list:
        conditions = [Tag.deleted_at.is_(None), Tag.is_hidden == query.is_hidden]
        if query.is_protected is not None:
            conditions.append(Tag.is_protected == query.is_protected)
        if query.type:
            conditions.append(Tag.type == query.type)
        return conditions

    def _media_count_subquery(self):
        return (
            select(MediaTag.tag_name, func.count(Media.id).label("media_count"))
            .join(Media, Media.id == MediaTag.media_id)
            .where(Media.deleted_at.is_(None))
            .group_by(MediaTag.tag_name)
            .subquery()
        )

    def list_tags(self, query: TagQuery) -> Tuple[List[Tuple[Tag, Optional[int]]], int]:
        """
        Page through the registry.

        Returns:
            Tuple of ([(tag, media_count or None)], total matching tags)
        """
        conditions = self._listing_conditions(query)
        total = self.session.execute(
            select(func.count(Tag.id)).where(*conditions)
        ).scalar_one()

        direction = desc if query.sort_order == "desc" else asc
        if query.popularity:
            counts = self._media_count_subquery()
            media_count = func.coalesce(counts.c.media_count, 0)
            stmt = (
                select(Tag, media_count)
                .outerjoin(counts, counts.c.tag_name == Tag.name)
                .where(*conditions)
                .order_by(media_count.desc(), asc(Tag.id))
            )
        else:
            column = TAG_SORTABLE_COLUMNS[query.sort_by]
            order = [direction(column)]
            if query.sort_by != "id":
                order.append(direction(Tag.id))
            stmt = select(Tag).where(*conditions).order_by(*order)

        stmt = stmt.offset(query.offset).limit(query.limit)
        if query.popularity:
            rows = [(tag, count) for tag, count in self.session.execute(stmt).all()]
        else:
            rows = [(tag, None) for tag in self.session.execute(stmt).scalars().all()]
        return rows, total

    def latest_media_for_tag(
        self, name: str, include_protected: bool = False
    ) -> Optional[Media]:
        """Most recent live media (highest id) carrying the tag."""
        stmt = (
            select(Media)
            .join(MediaTag, MediaTag.media_id == Media.id)
            .where(MediaTag.tag_name == name, *media_visibility(include_protected))
            .order_by(Media.id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    # Co-occurrence queries

    def co_occurring_tags(
        self,
        seed: str,
        tag_type: str,
        limit: int,
        include_protected: bool = False,
        by_recency: bool = False,
    ) -> List[RelatedTag]:
        """
        Tags of ``tag_type`` applied to the same live media as ``seed``.

        Ranked by number of shared media, or by the most recent shared media
        when ``by_recency`` is set. The representative media is the most
        recent shared one.
        """
        seed_link = aliased(MediaTag)
        other_link = aliased(MediaTag)
        shared = func.count(func.distinct(Media.id)).label("shared")
        latest = func.max(Media.id).label("latest")

        stmt = (
            select(Tag.name, Tag.type, latest, shared)
            .select_from(seed_link)
            .join(other_link, other_link.media_id == seed_link.media_id)
            .join(Tag, Tag.name == other_link.tag_name)
            .join(Media, Media.id == seed_link.media_id)
            .where(
                seed_link.tag_name == seed,
                other_link.tag_name != seed,
                Tag.type == tag_type,
                *tag_visibility(include_protected),
                *media_visibility(include_protected),
            )
            .group_by(Tag.name, Tag.type)
        )
        if by_recency:
            stmt = stmt.order_by(latest.desc(), Tag.name)
        else:
            stmt = stmt.order_by(shared.desc(), Tag.name)
        return self._related(stmt.limit(limit))

    def albums_sharing_person(
        self, album: str, limit: int, include_protected: bool = False
    ) -> List[RelatedTag]:
        """
        Other album tags that share at least one person tag with ``album``.

        Each album is represented by its most recent visible media. Persons
        and shared albums only count through media the caller may see.
        """
        seed_link = aliased(MediaTag)
        person_link = aliased(MediaTag)
        person_tag = aliased(Tag)
        seed_media = aliased(Media)
        persons = (
            select(person_link.tag_name)
            .join(seed_link, seed_link.media_id == person_link.media_id)
            .join(seed_media, seed_media.id == seed_link.media_id)
            .join(person_tag, person_tag.name == person_link.tag_name)
            .where(
                seed_link.tag_name == album,
                person_tag.type == TAG_TYPE_PERSON,
                person_tag.deleted_at.is_(None),
                *media_visibility(include_protected, seed_media),
            )
        )

        album_link = aliased(MediaTag)
        shared_link = aliased(MediaTag)
        shared_media = aliased(Media)
        candidate_albums = (
            select(album_link.tag_name)
            .join(shared_link, shared_link.media_id == album_link.media_id)
            .join(shared_media, shared_media.id == album_link.media_id)
            .where(
                shared_link.tag_name.in_(persons),
                album_link.tag_name != album,
                *media_visibility(include_protected, shared_media),
            )
        )

        latest = func.max(Media.id).label("latest")
        total = func.count(func.distinct(Media.id)).label("total")
        stmt = (
            select(Tag.name, Tag.type, latest, total)
            .select_from(Tag)
            .join(MediaTag, MediaTag.tag_name == Tag.name)
            .join(Media, Media.id == MediaTag.media_id)
            .where(
                Tag.type == TAG_TYPE_ALBUM,
                Tag.name.in_(candidate_albums),
                *tag_visibility(include_protected),
                *media_visibility(include_protected),
            )
            .group_by(Tag.name, Tag.type)
            .order_by(latest.desc(), Tag.name)
            .limit(limit)
        )
        return self._related(stmt)

    def random_untyped_tags(
        self, exclude: str, limit: int, include_protected: bool = False
    ) -> List[RelatedTag]:
        """Visible tags with no type carried by at least one live media, random order."""
        latest = func.max(Media.id).label("latest")
        total = func.count(func.distinct(Media.id)).label("total")
        stmt = (
            select(Tag.name, Tag.type, latest, total)
            .select_from(Tag)
            .join(MediaTag, MediaTag.tag_name == Tag.name)
            .join(Media, Media.id == MediaTag.media_id)
            .where(
                Tag.type.is_(None),
                Tag.name != exclude,
                *tag_visibility(include_protected),
                *media_visibility(include_protected),
            )
            .group_by(Tag.name, Tag.type)
            .order_by(func.random())
            .limit(limit)
        )
        return self._related(stmt)

    def _related(self, stmt) -> List[RelatedTag]:
        return [
            RelatedTag(name=row[0], type=row[1], media_id=row[2], count=row[3])
            for row in self.session.execute(stmt).all()
        ]


def tag_visibility(include_protected: bool) -> list:
    """Live, not hidden, and unprotected unless protected rows were asked for."""
    conditions = [Tag.deleted_at.is_(None), Tag.is_hidden.is_(False)]
    if not include_protected:
        conditions.append(Tag.is_protected.is_(False))
    return conditions


def media_visibility(include_protected: bool, media=Media) -> list:
    """Live and unprotected unless protected rows were asked for. ``media`` may be an alias."""
    conditions = [media.deleted_at.is_(None)]
    if not include_protected:
        conditions.append(media.is_protected.is_(False))
    return conditions
