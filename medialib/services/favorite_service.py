# File: medialib/services/favorite_service.py
"""
Service for per-user media favorites.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from medialib.core.exceptions import DuplicateEntityException, EntityNotFoundException
from medialib.core.security import AuthContext
from medialib.db.models.favorite import Favorite
from medialib.repositories.favorite_repository import FavoriteRepository
from medialib.repositories.media_repository import MediaRepository
from medialib.services.base_service import BaseService
from medialib.services.url_service import rewrite_many

logger = logging.getLogger(__name__)


class FavoriteService(BaseService[Favorite]):
    def __init__(self, session: Session):
        super().__init__(session, FavoriteRepository(session))
        self.media_repository = MediaRepository(session)

    def list_favorites(self, auth: AuthContext) -> List[Dict[str, Any]]:
        """The caller's favorite media, paths rewritten."""
        rows = self.repository.list_media(auth.user_id, include_protected=auth.is_admin)
        return rewrite_many(m.to_dict() for m in rows)

    def add_favorite(self, auth: AuthContext, media_id: int) -> Dict[str, Any]:
        with self.transaction():
            if self.media_repository.get_live(media_id) is None:
                raise EntityNotFoundException("Media", media_id)
            if self.repository.get(auth.user_id, media_id) is not None:
                raise DuplicateEntityException(f"Media {media_id} is already a favorite")
            favorite = self.repository.create({"user_id": auth.user_id, "media_id": media_id})
            result = favorite.to_dict()
        logger.info(f"User {auth.user_id} favorited media {media_id}")
        return result

    def remove_favorite(self, auth: AuthContext, media_id: int) -> None:
        with self.transaction():
            if not self.repository.remove(auth.user_id, media_id):
                raise EntityNotFoundException("Favorite", media_id)
