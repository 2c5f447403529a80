# File: medialib/api/endpoints/tags.py
"""
Tags API endpoints.

This module provides endpoints for listing and editing tags, the jobs that
reconcile tags with media, and related-tag recommendations.
"""

import logging
from typing import Any, Dict, Optional

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
from medialib.schemas.tag import (
    CheckTagsResponse,
    PopulateTagsRequest,
    PopulateTagsResponse,
    RecommendationResponse,
    TagUpdate,
)
from medialib.services.cache_service import CacheService
from medialib.services.service_factory import ServiceFactory

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_tags(
    *,
    request: Request,
    factory: ServiceFactory = Depends(get_service_factory),
    cache_service: CacheService = Depends(get_cache_service),
    auth: AuthContext = Depends(get_auth_context),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    is_protected: Optional[bool] = Query(None, description="Admin-only filter"),
    is_hidden: bool = Query(False, description="List hidden tags instead of visible ones"),
    type: Optional[str] = Query(None, description="Only tags of this type"),
    sort_by: str = Query("id"),
    sort_order: str = Query("asc"),
    check_media: bool = Query(False, description="Attach the latest media thumbnail"),
    popularity: bool = Query(False, description="Order by number of live media"),
) -> Dict[str, Any]:
    """
    Retrieve a page of tags.
    """
    service = factory.get_tag_service()

    def build():
        return service.list_tags(
            auth,
            page=page,
            limit=limit,
            is_protected=is_protected,
            is_hidden=is_hidden,
            type=type,
            sort_by=sort_by,
            sort_order=sort_order,
            check_media=check_media,
            popularity=popularity,
        )

    try:
        return cached_listing(request, cache_service, auth, build)
    except MediaLibException as e:
        raise http_error(e)


@router.get("/recommendations/{tag_name}", response_model=RecommendationResponse)
def recommend_tags(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(get_auth_context),
    tag_name: str,
    is_protected: Optional[bool] = Query(None),
) -> Dict[str, Any]:
    """
    Tags related to ``tag_name`` by co-occurrence on media.
    """
    return factory.get_recommendation_service().recommend(tag_name, auth, is_protected)


@router.post("/populate", response_model=PopulateTagsResponse)
def populate_tags(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: Optional[PopulateTagsRequest] = Body(None),
) -> Dict[str, Any]:
    """
    Register every tag used by live media, restoring soft-deleted ones.
    """
    start_id = payload.startId if payload is not None else 0
    result = factory.get_tag_service().populate_tags(start_id)
    return {"message": "Tags populated successfully", **result}


@router.post("/sync-media-tags")
def sync_media_tags(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    payload: Optional[PopulateTagsRequest] = Body(None),
) -> Dict[str, Any]:
    start_id = payload.startId if payload is not None else 0
    result = factory.get_tag_service().sync_media_tags(start_id)
    return {"message": "media_tags synchronized", **result}


@router.post("/check-tags", response_model=CheckTagsResponse)
def check_tags(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
) -> Dict[str, Any]:
    """
    Soft-delete tags that no live media uses any more.
    """
    result = factory.get_tag_service().check_tags()
    return {"message": "Tags checked successfully", **result}


@router.put("/{tag_id}")
def update_tag(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    tag_id: int,
    changes: TagUpdate,
) -> Dict[str, Any]:
    try:
        tag = factory.get_tag_service().update_tag(tag_id, changes)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Tag updated successfully", "data": tag}


@router.delete("/{tag_id}", status_code=status.HTTP_200_OK)
def delete_tag(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    tag_id: int,
) -> Dict[str, Any]:
    try:
        factory.get_tag_service().delete_tag(tag_id)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Tag deleted successfully"}
