# File: medialib/api/endpoints/playlists.py
"""
Playlist API endpoints.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from medialib.api.deps import (
    cached_listing,
    get_auth_context,
    get_cache_service,
    get_service_factory,
    http_error,
    require_authenticated,
)
from medialib.core.config import settings
from medialib.core.exceptions import MediaLibException
from medialib.core.security import AuthContext
from medialib.schemas.playlist import MediaActionsRequest, MediaIdsRequest, PlaylistCreate
from medialib.services.cache_service import CacheService
from medialib.services.service_factory import ServiceFactory

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_playlists(
    *,
    request: Request,
    factory: ServiceFactory = Depends(get_service_factory),
    cache_service: CacheService = Depends(get_cache_service),
    auth: AuthContext = Depends(get_auth_context),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    tags: Optional[str] = Query(None),
    match_all_tags: bool = Query(False),
    is_random: bool = Query(False),
) -> Dict[str, Any]:
    service = factory.get_playlist_service()

    def build():
        return service.list_playlists(
            auth,
            page=page,
            limit=limit,
            tags=tags,
            match_all_tags=match_all_tags,
            is_random=is_random,
        )

    if is_random:
        return build()
    return cached_listing(request, cache_service, auth, build)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_playlist(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: PlaylistCreate,
) -> Dict[str, Any]:
    playlist = factory.get_playlist_service().create_playlist(payload)
    return {"message": "Playlist created successfully", "data": playlist}


@router.get("/{playlist_id}/media")
def list_playlist_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(get_auth_context),
    playlist_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> Dict[str, Any]:
    try:
        return factory.get_playlist_service().list_media(
            playlist_id, auth, page=page, limit=limit
        )
    except MediaLibException as e:
        raise http_error(e)


@router.post("/{playlist_id}/media", status_code=status.HTTP_201_CREATED)
def add_playlist_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    playlist_id: int,
    payload: MediaIdsRequest,
) -> Dict[str, Any]:
    try:
        result = factory.get_playlist_service().add_media(
            playlist_id, payload.mediaIds, auth
        )
    except MediaLibException as e:
        raise http_error(e)
    return {
        "message": "Media added to playlist",
        "data": result.committed,
        "failedInserts": result.failed_as_dicts("media_id"),
    }


@router.put("/{playlist_id}/media")
def update_playlist_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    playlist_id: int,
    payload: MediaActionsRequest,
) -> Dict[str, Any]:
    """
    Apply ``in``/``out`` actions; an invalid action fails only that element.
    """
    try:
        result = factory.get_playlist_service().apply_actions(
            playlist_id, payload.mediaActions, auth
        )
    except MediaLibException as e:
        raise http_error(e)
    return {
        "message": "Playlist media updated",
        "data": [a.model_dump() for a in result.committed],
        "failedActions": [
            {"id": f.item.id, "action": f.item.action, "reason": f.reason}
            for f in result.failed
        ],
    }


@router.delete("/{playlist_id}/media")
def remove_playlist_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    playlist_id: int,
    payload: MediaIdsRequest,
) -> Dict[str, Any]:
    try:
        result = factory.get_playlist_service().remove_media(
            playlist_id, payload.mediaIds, auth
        )
    except MediaLibException as e:
        raise http_error(e)
    return {
        "message": "Media removed from playlist",
        "data": result.committed,
        "failedDeletes": result.failed_as_dicts("media_id"),
    }
