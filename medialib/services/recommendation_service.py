# File: medialib/services/recommendation_service.py
"""
Related-tag recommendations driven by tag co-occurrence.

The strategy depends on the seed tag's type:

- album: stages on the album, one person, albums sharing a person, and a
  random fallback when those are sparse
- person: albums the person appears in, then the person's stages
- stage: persons ranked by co-occurrence, then albums using the stage
- anything else: the random fallback only

Branch results are concatenated in that order and de-duplicated by name,
so earlier branches win.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.core.security import AuthContext
from medialib.db.models.media import Media
from medialib.db.models.tag import TAG_TYPE_ALBUM, TAG_TYPE_PERSON, TAG_TYPE_STAGE
from medialib.repositories.tag_repository import RelatedTag, TagRepository
from medialib.services.url_service import pick_thumbnail, rewrite_media_paths

logger = logging.getLogger(__name__)

ALBUM_STAGE_LIMIT = 5
ALBUM_PERSON_LIMIT = 1
ALBUM_RELATED_ALBUM_LIMIT = 10
PERSON_ALBUM_LIMIT = 10
PERSON_STAGE_LIMIT = 5
STAGE_PERSON_LIMIT = 15
STAGE_ALBUM_LIMIT = 8
FALLBACK_LIMIT = 10


class RecommendationService:
    """
    Builds the related-tag list for one seed tag.
    """

    def __init__(self, session: Session):
        self.session = session
        self.tag_repository = TagRepository(session)

    def recommend(
        self, tag_name: str, auth: AuthContext, is_protected: Optional[bool] = None
    ) -> Dict[str, Any]:
        """
        Recommend tags related to ``tag_name``.

        Args:
            tag_name: Seed tag; an unknown name gets the fallback list only
            auth: Caller
            is_protected: Protected tags and media are included only for an
                admin passing True

        Returns:
            ``{tag, type, data}`` where each entry is
            ``{name, type, media_id, thumbnail, count}``
        """
        include_protected = auth.sees_protected(is_protected)
        seed = self.tag_repository.find_by_name_ci(tag_name)
        seed_name = seed.name if seed is not None else tag_name
        seed_type = seed.type if seed is not None and seed.deleted_at is None else None

        if seed_type == TAG_TYPE_ALBUM:
            related = self._for_album(seed_name, include_protected)
        elif seed_type == TAG_TYPE_PERSON:
            related = self._for_person(seed_name, include_protected)
        elif seed_type == TAG_TYPE_STAGE:
            related = self._for_stage(seed_name, include_protected)
        else:
            related = self._fallback(seed_name, include_protected)

        entries = self._with_thumbnails(_dedupe(related, seed_name), include_protected)
        logger.debug(f"Recommendations for '{seed_name}' ({seed_type}): {len(entries)}")
        return {"tag": seed_name, "type": seed_type, "data": entries}

    def _fallback(self, seed: str, include_protected: bool) -> List[RelatedTag]:
        return self.tag_repository.random_untyped_tags(
            seed, FALLBACK_LIMIT, include_protected
        )

    def _for_album(self, album: str, include_protected: bool) -> List[RelatedTag]:
        repo = self.tag_repository
        related = repo.co_occurring_tags(
            album, TAG_TYPE_STAGE, ALBUM_STAGE_LIMIT, include_protected
        )
        related += repo.co_occurring_tags(
            album, TAG_TYPE_PERSON, ALBUM_PERSON_LIMIT, include_protected
        )
        related += repo.albums_sharing_person(
            album, ALBUM_RELATED_ALBUM_LIMIT, include_protected
        )
        if len(_dedupe(related, album)) < settings.RECOMMENDATION_SPARSE_THRESHOLD:
            related += self._fallback(album, include_protected)
        return related

    def _for_person(self, person: str, include_protected: bool) -> List[RelatedTag]:
        repo = self.tag_repository
        related = repo.co_occurring_tags(
            person,
            TAG_TYPE_ALBUM,
            PERSON_ALBUM_LIMIT,
            include_protected,
            by_recency=True,
        )
        related += repo.co_occurring_tags(
            person, TAG_TYPE_STAGE, PERSON_STAGE_LIMIT, include_protected
        )
        return related + self._fallback(person, include_protected)

    def _for_stage(self, stage: str, include_protected: bool) -> List[RelatedTag]:
        repo = self.tag_repository
        related = repo.co_occurring_tags(
            stage, TAG_TYPE_PERSON, STAGE_PERSON_LIMIT, include_protected
        )
        related += repo.co_occurring_tags(
            stage,
            TAG_TYPE_ALBUM,
            STAGE_ALBUM_LIMIT,
            include_protected,
            by_recency=True,
        )
        return related + self._fallback(stage, include_protected)

    def _with_thumbnails(
        self, related: List[RelatedTag], include_protected: bool
    ) -> List[Dict[str, Any]]:
        media_ids = {r.media_id for r in related if r.media_id is not None}
        media_by_id: Dict[int, Dict[str, Any]] = {}
        if media_ids:
            stmt = select(Media).where(Media.id.in_(media_ids), Media.deleted_at.is_(None))
            if not include_protected:
                stmt = stmt.where(Media.is_protected.is_(False))
            for media in self.session.execute(stmt).scalars().all():
                media_by_id[media.id] = rewrite_media_paths(media.to_dict())

        return [
            {
                "name": r.name,
                "type": r.type,
                "media_id": r.media_id if r.media_id in media_by_id else None,
                "thumbnail": pick_thumbnail(media_by_id.get(r.media_id)),
                "count": r.count,
            }
            for r in related
        ]


def _dedupe(related: Iterable[RelatedTag], seed: str) -> List[RelatedTag]:
    """First occurrence of each name wins; the seed never appears."""
    seen = {seed}
    unique = []
    for r in related:
        if r.name not in seen:
            seen.add(r.name)
            unique.append(r)
    return unique
