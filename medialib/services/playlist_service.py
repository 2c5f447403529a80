# File: medialib/services/playlist_service.py
"""
Service for playlists and their media membership.
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
from medialib.db.models.playlist import Playlist
from medialib.repositories.media_repository import MediaRepository
from medialib.repositories.playlist_repository import PlaylistRepository
from medialib.repositories.tag_filters import parse_tag_list
from medialib.schemas.playlist import MediaAction, PlaylistCreate, PlaylistResponse
from medialib.services.base_service import BaseService, page_envelope
from medialib.services.batch import BatchResult
from medialib.services.url_service import rewrite_many

logger = logging.getLogger(__name__)

MEMBERSHIP_ACTIONS = ("in", "out")


class PlaylistService(BaseService[Playlist]):
    """
    Service for playlist business operations.
    """

    def __init__(self, session: Session, cache_service=None):
        super().__init__(session, PlaylistRepository(session), cache_service)
        self.media_repository = MediaRepository(session)

    def list_playlists(
        self,
        auth: AuthContext,
        page: int = 1,
        limit: int = 10,
        tags: Optional[str] = None,
        match_all_tags: bool = False,
        is_random: bool = False,
    ) -> Dict[str, Any]:
        """Visible playlists, filtered on their own comma-joined tags."""
        rows, total = self.repository.list_playlists(
            offset=(page - 1) * limit,
            limit=limit,
            include_protected=auth.is_admin,
            tags=parse_tag_list(tags),
            match_all_tags=match_all_tags,
            is_random=is_random,
        )
        data = [PlaylistResponse.model_validate(p).model_dump(mode="json") for p in rows]
        return page_envelope(data, page, limit, total)

    def create_playlist(self, payload: PlaylistCreate) -> Dict[str, Any]:
        with self.transaction():
            playlist = self.repository.create(payload.model_dump())
            result = PlaylistResponse.model_validate(playlist).model_dump(mode="json")
        logger.info(f"Created playlist {result['id']} '{payload.name}'")
        self.invalidate_cache()
        return result

    def _get_playlist(self, playlist_id: int, auth: AuthContext) -> Playlist:
        playlist = self.repository.get_by_id(playlist_id)
        if playlist is None or (playlist.is_protected and not auth.is_admin):
            raise EntityNotFoundException("Playlist", playlist_id)
        return playlist

    def list_media(
        self, playlist_id: int, auth: AuthContext, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        self._get_playlist(playlist_id, auth)
        rows, total = self.repository.list_media(
            playlist_id, (page - 1) * limit, limit, include_protected=auth.is_admin
        )
        data = rewrite_many(m.to_dict() for m in rows)
        return page_envelope(data, page, limit, total)

    def _add(self, playlist_id: int, media_id: int) -> None:
        if self.media_repository.get_live(media_id) is None:
            raise EntityNotFoundException("Media", media_id)
        if self.repository.has_media(playlist_id, media_id):
            raise DuplicateEntityException(
                f"Media {media_id} is already in playlist {playlist_id}"
            )
        self.repository.add_media(playlist_id, media_id)

    def _remove(self, playlist_id: int, media_id: int) -> None:
        if not self.repository.remove_media(playlist_id, media_id):
            raise EntityNotFoundException("Playlist media", media_id)

    def add_media(
        self, playlist_id: int, media_ids: List[int], auth: AuthContext
    ) -> BatchResult:
        self._get_playlist(playlist_id, auth)
        result = self.run_batch(
            media_ids, lambda media_id: self._add(playlist_id, media_id), describe=str
        )
        self.invalidate_cache()
        return result

    def remove_media(
        self, playlist_id: int, media_ids: List[int], auth: AuthContext
    ) -> BatchResult:
        self._get_playlist(playlist_id, auth)
        result = self.run_batch(
            media_ids, lambda media_id: self._remove(playlist_id, media_id), describe=str
        )
        self.invalidate_cache()
        return result

    def apply_actions(
        self, playlist_id: int, actions: List[MediaAction], auth: AuthContext
    ) -> BatchResult:
        """
        Apply ``in``/``out`` membership changes. An unknown action fails that element.
        """
        self._get_playlist(playlist_id, auth)

        def apply(action: MediaAction) -> None:
            if action.action not in MEMBERSHIP_ACTIONS:
                raise ValidationException(f"Invalid action format: {action.action}")
            if action.action == "in":
                self._add(playlist_id, action.id)
            else:
                self._remove(playlist_id, action.id)

        result = self.run_batch(actions, apply, describe=lambda a: f"{a.action}:{a.id}")
        logger.info(
            f"Playlist {playlist_id} updated: {len(result.committed)} applied, "
            f"{len(result.failed)} failed"
        )
        self.invalidate_cache()
        return result
