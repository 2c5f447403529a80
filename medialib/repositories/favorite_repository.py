# File: medialib/repositories/favorite_repository.py
"""
Repository for per-user media favorites.
"""

from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from medialib.db.models.favorite import Favorite
from medialib.db.models.media import Media
from medialib.repositories.base_repository import BaseRepository


class FavoriteRepository(BaseRepository[Favorite]):
    model = Favorite

    def __init__(self, session: Session):
        super().__init__(session, Favorite)

    def list_media(self, user_id: str, include_protected: bool = False) -> List[Media]:
        """Live favorite media of a user, most recently favorited first."""
        conditions = [Favorite.user_id == user_id, Media.deleted_at.is_(None)]
        if not include_protected:
            conditions.append(Media.is_protected.is_(False))
        stmt = (
            select(Media)
            .join(Favorite, Favorite.media_id == Media.id)
            .where(*conditions)
            .order_by(Favorite.id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def get(self, user_id: str, media_id: int) -> Optional[Favorite]:
        stmt = select(Favorite).where(
            Favorite.user_id == user_id, Favorite.media_id == media_id
        )
        return self.session.execute(stmt).scalars().first()

    def remove(self, user_id: str, media_id: int) -> int:
        result = self.session.execute(
            delete(Favorite).where(
                Favorite.user_id == user_id, Favorite.media_id == media_id
            )
        )
        return result.rowcount
