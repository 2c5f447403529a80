# File: medialib/services/album_service.py
"""
Service for albums, album membership and favorite albums.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from medialib.core.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationException,
)
from medialib.core.security import AuthContext
from medialib.db.models.album import Album
from medialib.repositories.album_repository import AlbumRepository
from medialib.repositories.media_repository import MediaRepository
from medialib.schemas.playlist import AlbumCreate, AlbumResponse, MediaAction
from medialib.services.base_service import BaseService, page_envelope
from medialib.services.batch import BatchResult
from medialib.services.playlist_service import MEMBERSHIP_ACTIONS
from medialib.services.url_service import rewrite_many

logger = logging.getLogger(__name__)


def _album_dict(album: Album) -> Dict[str, Any]:
    return AlbumResponse.model_validate(album).model_dump(mode="json")


class AlbumService(BaseService[Album]):
    """
    Service for album business operations.

    Hidden albums are only listed for admins; protected albums only for
    admins as well.
    """

    def __init__(self, session: Session, cache_service=None):
        super().__init__(session, AlbumRepository(session), cache_service)
        self.media_repository = MediaRepository(session)

    def list_albums(
        self,
        auth: AuthContext,
        page: int = 1,
        limit: int = 10,
        parent: Optional[int] = None,
    ) -> Dict[str, Any]:
        rows, total = self.repository.list_albums(
            offset=(page - 1) * limit,
            limit=limit,
            include_protected=auth.is_admin,
            include_hidden=auth.is_admin,
            parent=parent,
        )
        return page_envelope([_album_dict(a) for a in rows], page, limit, total)

    def create_album(self, payload: AlbumCreate, auth: AuthContext) -> Dict[str, Any]:
        data = payload.model_dump()
        data["owner"] = auth.user_id
        with self.transaction():
            if data.get("parent") is not None and self.repository.get_live(data["parent"]) is None:
                raise EntityNotFoundException("Album", data["parent"])
            album = self.repository.create(data)
            result = _album_dict(album)
        logger.info(f"Created album {result['id']} '{payload.title}'")
        self.invalidate_cache()
        return result

    def delete_album(self, album_id: int) -> None:
        """Soft-delete an album; its membership rows are kept."""
        with self.transaction():
            album = self.repository.get_live(album_id)
            if album is None:
                raise EntityNotFoundException("Album", album_id)
            album.soft_delete()
        logger.info(f"Soft-deleted album {album_id}")
        self.invalidate_cache()

    def _get_visible(self, album_id: int, auth: AuthContext) -> Album:
        album = self.repository.get_live(album_id)
        if album is None or (album.is_protected and not auth.is_admin):
            raise EntityNotFoundException("Album", album_id)
        return album

    def list_media(
        self, album_id: int, auth: AuthContext, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        self._get_visible(album_id, auth)
        rows, total = self.repository.list_media(
            album_id, (page - 1) * limit, limit, include_protected=auth.is_admin
        )
        data = rewrite_many(m.to_dict() for m in rows)
        return page_envelope(data, page, limit, total)

    def apply_actions(
        self, album_id: int, actions: List[MediaAction], auth: AuthContext
    ) -> BatchResult:
        """Apply ``in``/``out`` membership changes with per-element failures."""
        self._get_visible(album_id, auth)

        def apply(action: MediaAction) -> None:
            if action.action not in MEMBERSHIP_ACTIONS:
                raise ValidationException(f"Invalid action format: {action.action}")
            if action.action == "in":
                if self.media_repository.get_live(action.id) is None:
                    raise EntityNotFoundException("Media", action.id)
                if self.repository.has_media(album_id, action.id):
                    raise DuplicateEntityException(
                        f"Media {action.id} is already in album {album_id}"
                    )
                self.repository.add_media(album_id, action.id)
            elif not self.repository.remove_media(album_id, action.id):
                raise EntityNotFoundException("Album media", action.id)

        result = self.run_batch(actions, apply, describe=lambda a: f"{a.action}:{a.id}")
        self.invalidate_cache()
        return result

    # Favorite albums

    def list_favorites(self, user_identifier: str, auth: AuthContext) -> List[Dict[str, Any]]:
        rows = self.repository.list_favorites(
            user_identifier, include_protected=auth.is_admin
        )
        return [_album_dict(a) for a in rows]

    def add_favorite(
        self, user_identifier: str, album_id: int, auth: AuthContext
    ) -> Dict[str, Any]:
        with self.transaction():
            self._get_visible(album_id, auth)
            if self.repository.get_favorite(user_identifier, album_id) is not None:
                raise DuplicateEntityException(
                    f"Album {album_id} is already a favorite of {user_identifier}"
                )
            favorite = self.repository.add_favorite(user_identifier, album_id)
            result = {
                "id": favorite.id,
                "user_identifier": user_identifier,
                "album_id": album_id,
            }
        return result

    def remove_favorite(self, user_identifier: str, album_id: int) -> None:
        with self.transaction():
            if not self.repository.remove_favorite(user_identifier, album_id):
                raise EntityNotFoundException("Favorite album", album_id)
