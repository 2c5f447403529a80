# File: medialib/repositories/playlist_repository.py
"""
Repository for Playlist entities and their media membership.
"""

from typing import List, Optional, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from medialib.db.models.media import Media
from medialib.db.models.playlist import Playlist, playlist_media
from medialib.repositories.base_repository import BaseRepository
from medialib.repositories.tag_filters import comma_list_filter


class PlaylistRepository(BaseRepository[Playlist]):
    """
    Repository for Playlist entity operations.
    """

    model = Playlist

    def __init__(self, session: Session):
        super().__init__(session, Playlist)

    def list_playlists(
        self,
        offset: int,
        limit: int,
        include_protected: bool = False,
        tags: Optional[List[str]] = None,
        match_all_tags: bool = False,
        is_random: bool = False,
    ) -> Tuple[List[Playlist], int]:
        conditions = []
        if not include_protected:
            conditions.append(Playlist.is_protected.is_(False))
        tag_condition = comma_list_filter(Playlist.tags, tags or [], match_all_tags)
        if tag_condition is not None:
            conditions.append(tag_condition)

        total = self.session.execute(
            select(func.count(Playlist.id)).where(*conditions)
        ).scalar_one()
        order = func.random() if is_random else Playlist.id
        stmt = (
            select(Playlist)
            .where(*conditions)
            .order_by(order)
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all()), total

    def list_media(
        self, playlist_id: int, offset: int, limit: int, include_protected: bool = False
    ) -> Tuple[List[Media], int]:
        """Live media in the playlist, ordered by media id."""
        conditions = [
            playlist_media.c.playlist_id == playlist_id,
            Media.deleted_at.is_(None),
        ]
        if not include_protected:
            conditions.append(Media.is_protected.is_(False))

        base = select(Media).join(playlist_media, playlist_media.c.media_id == Media.id)
        total = self.session.execute(
            select(func.count(Media.id))
            .join(playlist_media, playlist_media.c.media_id == Media.id)
            .where(*conditions)
        ).scalar_one()
        stmt = base.where(*conditions).order_by(Media.id).offset(offset).limit(limit)
        return list(self.session.execute(stmt).scalars().all()), total

    def has_media(self, playlist_id: int, media_id: int) -> bool:
        stmt = select(playlist_media.c.media_id).where(
            playlist_media.c.playlist_id == playlist_id,
            playlist_media.c.media_id == media_id,
        )
        return self.session.execute(stmt).first() is not None

    def add_media(self, playlist_id: int, media_id: int) -> None:
        self.session.execute(
            insert(playlist_media).values(playlist_id=playlist_id, media_id=media_id)
        )

    def remove_media(self, playlist_id: int, media_id: int) -> int:
        result = self.session.execute(
            delete(playlist_media).where(
                playlist_media.c.playlist_id == playlist_id,
                playlist_media.c.media_id == media_id,
            )
        )
        return result.rowcount
