# File: medialib/repositories/album_repository.py
"""
Repository for Album entities, album membership and favorite albums.
"""

from typing import List, Optional, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from medialib.db.models.album import Album, FavoriteAlbum, album_media
from medialib.db.models.media import Media
from medialib.repositories.base_repository import BaseRepository


class AlbumRepository(BaseRepository[Album]):
    """
    Repository for Album entity operations.
    """

    model = Album

    def __init__(self, session: Session):
        super().__init__(session, Album)

    def _visibility(self, include_protected: bool, include_hidden: bool) -> list:
        conditions = [Album.deleted_at.is_(None)]
        if not include_hidden:
            conditions.append(Album.is_hidden.is_(False))
        if not include_protected:
            conditions.append(Album.is_protected.is_(False))
        return conditions

    def get_live(self, album_id: int) -> Optional[Album]:
        stmt = select(Album).where(Album.id == album_id, Album.deleted_at.is_(None))
        return self.session.execute(stmt).scalar_one_or_none()

    def list_albums(
        self,
        offset: int,
        limit: int,
        include_protected: bool = False,
        include_hidden: bool = False,
        parent: Optional[int] = None,
    ) -> Tuple[List[Album], int]:
        conditions = self._visibility(include_protected, include_hidden)
        if parent is not None:
            conditions.append(Album.parent == parent)

        total = self.session.execute(
            select(func.count(Album.id)).where(*conditions)
        ).scalar_one()
        stmt = (
            select(Album)
            .where(*conditions)
            .order_by(Album.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all()), total

    def list_media(
        self, album_id: int, offset: int, limit: int, include_protected: bool = False
    ) -> Tuple[List[Media], int]:
        conditions = [album_media.c.album_id == album_id, Media.deleted_at.is_(None)]
        if not include_protected:
            conditions.append(Media.is_protected.is_(False))

        total = self.session.execute(
            select(func.count(Media.id))
            .join(album_media, album_media.c.media_id == Media.id)
            .where(*conditions)
        ).scalar_one()
        stmt = (
            select(Media)
            .join(album_media, album_media.c.media_id == Media.id)
            .where(*conditions)
            .order_by(Media.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all()), total

    def has_media(self, album_id: int, media_id: int) -> bool:
        stmt = select(album_media.c.media_id).where(
            album_media.c.album_id == album_id, album_media.c.media_id == media_id
        )
        return self.session.execute(stmt).first() is not None

    def add_media(self, album_id: int, media_id: int) -> None:
        self.session.execute(
            insert(album_media).values(album_id=album_id, media_id=media_id)
        )

    def remove_media(self, album_id: int, media_id: int) -> int:
        result = self.session.execute(
            delete(album_media).where(
                album_media.c.album_id == album_id, album_media.c.media_id == media_id
            )
        )
        return result.rowcount

    # Favorite albums

    def list_favorites(
        self, user_identifier: str, include_protected: bool = False
    ) -> List[Album]:
        stmt = (
            select(Album)
            .join(FavoriteAlbum, FavoriteAlbum.album_id == Album.id)
            .where(
                FavoriteAlbum.user_identifier == user_identifier,
                *self._visibility(include_protected, include_hidden=True),
            )
            .order_by(FavoriteAlbum.id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_favorite(self, user_identifier: str, album_id: int) -> Optional[FavoriteAlbum]:
        stmt = select(FavoriteAlbum).where(
            FavoriteAlbum.user_identifier == user_identifier,
            FavoriteAlbum.album_id == album_id,
        )
        return self.session.execute(stmt).scalars().first()

    def add_favorite(self, user_identifier: str, album_id: int) -> FavoriteAlbum:
        favorite = FavoriteAlbum(user_identifier=user_identifier, album_id=album_id)
        self.session.add(favorite)
        self.session.flush()
        return favorite

    def remove_favorite(self, user_identifier: str, album_id: int) -> int:
        result = self.session.execute(
            delete(FavoriteAlbum).where(
                FavoriteAlbum.user_identifier == user_identifier,
                FavoriteAlbum.album_id == album_id,
            )
        )
        return result.rowcount
