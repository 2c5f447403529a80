# File: medialib/api/endpoints/media.py
"""
Media API endpoints.

Listings are public with protected rows hidden from non-admins. Batch
mutations always answer with the committed elements and a ``failed*`` list;
a 2xx status does not mean every element was applied.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

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
from medialib.schemas.media import BatchProtectedRequest, BatchTagsRequest
from medialib.schemas.playlist import FavoriteRequest
from medialib.services.cache_service import CacheService
from medialib.services.service_factory import ServiceFactory

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_media(
    *,
    request: Request,
    factory: ServiceFactory = Depends(get_service_factory),
    cache_service: CacheService = Depends(get_cache_service),
    auth: AuthContext = Depends(get_auth_context),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    tags: Optional[str] = Query(None, description="Comma-separated tags to match"),
    tag_exclude: Optional[str] = Query(None, description="Comma-separated tags to exclude"),
    match_all_tags: bool = Query(False, description="Require every tag instead of any"),
    file_type: Optional[str] = Query(None, description="Comma-separated file types"),
    is_protected: Optional[bool] = Query(None, description="Admin-only filter"),
    is_random: bool = Query(False),
    sort_by: str = Query("id"),
    sort_order: str = Query("asc"),
) -> Dict[str, Any]:
    """
    Retrieve a page of media with optional tag and type filters.
    """
    service = factory.get_media_service()

    def build():
        return service.list_media(
            auth,
            page=page,
            limit=limit,
            tags=tags,
            tag_exclude=tag_exclude,
            match_all_tags=match_all_tags,
            file_type=file_type,
            is_protected=is_protected,
            is_random=is_random,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    try:
        if is_random:
            return build()
        return cached_listing(request, cache_service, auth, build)
    except MediaLibException as e:
        raise http_error(e)


@router.post("/batch", status_code=status.HTTP_201_CREATED)
def insert_media_batch(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    items: List[Any] = Body(...),
) -> Dict[str, Any]:
    """
    Insert media rows. Each element fails on its own, e.g. on a duplicate path.
    """
    result = factory.get_media_service().insert_batch(items)
    return {
        "message": "Batch media data inserted successfully",
        "data": result.committed,
        "failedInserts": result.failed_as_dicts("file_path"),
    }


@router.put("/batch")
def update_media_batch(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    items: List[Any] = Body(...),
) -> Dict[str, Any]:
    result = factory.get_media_service().update_batch(items)
    return {
        "message": "Batch media data updated successfully",
        "data": result.committed,
        "failedUpdates": result.failed_as_dicts("id"),
    }


@router.delete("/batch")
def delete_media_batch(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    items: List[Any] = Body(...),
) -> Dict[str, Any]:
    """
    Soft-delete media rows identified by ``file_path``.
    """
    result = factory.get_media_service().delete_batch(items)
    return {
        "message": "Batch media data deleted successfully",
        "data": result.committed,
        "failedDeletes": result.failed_as_dicts("file_path"),
    }


@router.put("/batch/tags")
def add_tags_batch(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: BatchTagsRequest,
) -> Dict[str, Any]:
    result = factory.get_media_service().add_tags_batch(payload.ids, payload.tags)
    return {
        "message": "Batch tags updated successfully",
        "data": result.committed,
        "failedUpdates": result.failed_as_dicts("id"),
    }


@router.delete("/batch/tags")
def remove_tags_batch(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: BatchTagsRequest,
) -> Dict[str, Any]:
    result = factory.get_media_service().remove_tags_batch(payload.ids, payload.tags)
    return {
        "message": "Batch tags removed successfully",
        "data": result.committed,
        "failedDeletes": result.failed_as_dicts("id"),
    }


@router.put("/batch/protected")
def set_protected_batch(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: BatchProtectedRequest,
) -> Dict[str, Any]:
    result = factory.get_media_service().set_protected_batch(
        payload.ids, payload.is_protected
    )
    return {
        "message": "Batch protection status updated successfully",
        "data": result.committed,
        "failedUpdates": result.failed_as_dicts("id"),
    }


@router.get("/check-files")
def check_files(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    delete_missing: bool = Query(False, alias="deleteMissing"),
) -> Dict[str, Any]:
    """
    Report live local media whose file is gone, optionally soft-deleting them.
    """
    result = factory.get_media_service().check_files(delete_missing=delete_missing)
    return {"message": "File check completed", **result}


# --- Favorites ---

@router.get("/favorites")
def list_favorites(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
) -> Dict[str, Any]:
    return {"data": factory.get_favorite_service().list_favorites(auth)}


@router.post("/favorite", status_code=status.HTTP_201_CREATED)
def add_favorite(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: FavoriteRequest,
) -> Dict[str, Any]:
    try:
        favorite = factory.get_favorite_service().add_favorite(auth, payload.media_id)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Media added to favorites", "data": favorite}


@router.delete("/favorite/{media_id}")
def remove_favorite(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    media_id: int,
) -> Dict[str, Any]:
    try:
        factory.get_favorite_service().remove_favorite(auth, media_id)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Media removed from favorites"}


@router.delete("/{media_id}")
def delete_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    media_id: int,
    delete_with_data: bool = Query(False, alias="deleteWithData"),
) -> Dict[str, Any]:
    """
    Soft-delete one media, or remove the row and its files with deleteWithData.
    """
    try:
        result = factory.get_media_service().delete_media(media_id, delete_with_data)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Media deleted successfully", **result}
