# File: medialib/api/endpoints/albums.py
"""
Album API endpoints, including per-user favorite albums.
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
from medialib.schemas.playlist import AlbumCreate, FavoriteAlbumRequest, MediaActionsRequest
from medialib.services.cache_service import CacheService
from medialib.services.service_factory import ServiceFactory

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_albums(
    *,
    request: Request,
    factory: ServiceFactory = Depends(get_service_factory),
    cache_service: CacheService = Depends(get_cache_service),
    auth: AuthContext = Depends(get_auth_context),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    parent: Optional[int] = Query(None, description="Only children of this album"),
) -> Dict[str, Any]:
    service = factory.get_album_service()
    return cached_listing(
        request,
        cache_service,
        auth,
        lambda: service.list_albums(auth, page=page, limit=limit, parent=parent),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_album(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: AlbumCreate,
) -> Dict[str, Any]:
    try:
        album = factory.get_album_service().create_album(payload, auth)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Album created successfully", "data": album}


# --- Favorite albums ---

@router.get("/favorites")
def list_favorite_albums(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    user_identifier: Optional[str] = Query(None, description="Defaults to the caller"),
) -> Dict[str, Any]:
    user = user_identifier or auth.user_id
    return {"data": factory.get_album_service().list_favorites(user, auth)}


@router.post("/favorites", status_code=status.HTTP_201_CREATED)
def add_favorite_album(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: FavoriteAlbumRequest,
) -> Dict[str, Any]:
    user = payload.user_identifier or auth.user_id
    try:
        favorite = factory.get_album_service().add_favorite(user, payload.album_id, auth)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Album added to favorites", "data": favorite}


@router.delete("/favorites/{album_id}")
def remove_favorite_album(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    album_id: int,
    user_identifier: Optional[str] = Query(None),
) -> Dict[str, Any]:
    user = user_identifier or auth.user_id
    try:
        factory.get_album_service().remove_favorite(user, album_id)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Album removed from favorites"}


# --- Single album ---

@router.delete("/{album_id}")
def delete_album(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    album_id: int,
) -> Dict[str, Any]:
    try:
        factory.get_album_service().delete_album(album_id)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Album deleted successfully"}


@router.get("/{album_id}/media")
def list_album_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(get_auth_context),
    album_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> Dict[str, Any]:
    try:
        return factory.get_album_service().list_media(album_id, auth, page=page, limit=limit)
    except MediaLibException as e:
        raise http_error(e)


@router.put("/{album_id}/media")
def update_album_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    album_id: int,
    payload: MediaActionsRequest,
) -> Dict[str, Any]:
    """
    Apply ``in``/``out`` actions; an invalid action fails only that element.
    """
    try:
        result = factory.get_album_service().apply_actions(
            album_id, payload.mediaActions, auth
        )
    except MediaLibException as e:
        raise http_error(e)
    return {
        "message": "Album media updated",
        "data": [a.model_dump() for a in result.committed],
        "failedActions": [
            {"id": f.item.id, "action": f.item.action, "reason": f.reason}
            for f in result.failed
        ],
    }
