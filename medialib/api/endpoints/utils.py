# File: medialib/api/endpoints/utils.py
"""
Filesystem maintenance endpoints.

Every job runs synchronously inside the request. ``directoryPath`` is always
resolved inside MEDIA_ROOT; a path escaping the root is rejected with 400.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from medialib.api.deps import get_service_factory, http_error, require_authenticated
from medialib.core.exceptions import MediaLibException
from medialib.core.security import AuthContext
from medialib.services.media_scanner_service import scan_directories
from medialib.services.service_factory import ServiceFactory

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_directory(directory_path: Optional[str]) -> str:
    if not directory_path or not directory_path.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="directoryPath query parameter is required and must be a string",
        )
    return directory_path


@router.get("/scan-dir")
def scan_dir(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    directory_path: Optional[str] = Query(None, alias="directoryPath"),
) -> Dict[str, Any]:
    """
    List every sub-directory below ``directoryPath``.
    """
    directory = _require_directory(directory_path)
    logger.info(f"Scanning directory: {directory}")
    try:
        found = scan_directories(factory.file_storage_service, directory)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Directories scanned successfully", "dir": found}


@router.api_route("/generate-thumbnails", methods=["GET", "POST"])
def generate_thumbnails(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    directory_path: Optional[str] = Query(None, alias="directoryPath"),
) -> Dict[str, Any]:
    """
    Create missing thumbnails for every file below ``directoryPath``.
    """
    directory = _require_directory(directory_path)
    logger.info(f"Generating thumbnails for directory: {directory}")
    try:
        results = factory.get_thumbnail_service().process_directory(directory)
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Thumbnail generation completed", "results": results}


@router.api_route("/update-created-date", methods=["GET", "POST"])
def update_created_date(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    directory_path: Optional[str] = Query(None, alias="directoryPath"),
    recursive_check: bool = Query(False, alias="recursiveCheck"),
) -> Dict[str, Any]:
    """
    Copy ``.MOV`` birth times onto the matching ``.mp4`` media rows.
    """
    directory = _require_directory(directory_path)
    logger.info(f"Updating created dates for directory: {directory}")
    try:
        result = factory.get_created_date_service().update_created_dates(
            directory, recursive=recursive_check
        )
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Created dates updated successfully", **result}


@router.api_route("/optimize-videos", methods=["GET", "POST"])
def optimize_videos(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    directory_path: Optional[str] = Query(None, alias="directoryPath"),
    recursive: bool = Query(True),
) -> Dict[str, Any]:
    """
    Convert every .MOV below ``directoryPath`` to an .mp4 beside it.
    """
    directory = _require_directory(directory_path)
    logger.info(f"Optimizing videos in directory: {directory}")
    try:
        result = factory.get_video_optimizer_service().optimize_directory(
            directory, recursive=recursive
        )
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Video optimization completed", **result}


@router.get("/find-thumbnails")
def find_thumbnails(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    directory_path: Optional[str] = Query(None, alias="directoryPath"),
) -> Dict[str, Any]:
    directory = _require_directory(directory_path)
    try:
        missing = factory.get_thumbnail_service().find_missing_thumbnails(directory)
    except MediaLibException as e:
        raise http_error(e)
    return {
        "message": "Missing thumbnails found",
        "count": len(missing),
        "missingThumbnails": missing,
    }


@router.get("/find-orphan-thumbnails")
def find_orphan_thumbnails(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    directory_path: Optional[str] = Query(None, alias="directoryPath"),
    delete: bool = Query(False, description="Unlink the orphans that were found"),
) -> Dict[str, Any]:
    """
    Thumbnails whose original file is gone. Nothing is deleted unless asked.
    """
    directory = _require_directory(directory_path)
    try:
        result = factory.get_thumbnail_service().find_orphan_thumbnails(
            directory, delete=delete
        )
    except MediaLibException as e:
        raise http_error(e)
    return {
        "message": "Orphan thumbnails found",
        "count": len(result["orphans"]),
        "orphanThumbnails": result["orphans"],
        "deletedThumbnails": result["deleted"],
    }


@router.post("/scan-media")
def scan_media(
    *,
    factory: ServiceFactory = Depends(get_service_factory),
    auth: AuthContext = Depends(require_authenticated),
    directory_path: Optional[str] = Query(None, alias="directoryPath"),
    recursive: bool = Query(False),
    tags: Optional[str] = Query(None, description="Comma-separated tags for every new row"),
    use_directory_tags: bool = Query(False, alias="useDirectoryTags"),
    excluded_directories: Optional[str] = Query(
        None,
        alias="excludedDirectories",
        description="Comma-separated directory names never used as tags",
    ),
    is_protected: bool = Query(False, alias="isProtected"),
) -> Dict[str, Any]:
    """
    Index the supported files below ``directoryPath`` into the media table.
    """
    directory = _require_directory(directory_path)
    excluded = None
    if excluded_directories is not None:
        excluded = [d.strip().lower() for d in excluded_directories.split(",") if d.strip()]

    logger.info(f"Scanning media in: {directory} (recursive: {recursive})")
    try:
        result = factory.get_media_scanner_service().scan(
            directory,
            recursive=recursive,
            tags=tags,
            use_directory_tags=use_directory_tags,
            excluded_directories=excluded,
            is_protected=is_protected,
        )
    except MediaLibException as e:
        raise http_error(e)
    return {"message": "Media scan completed", **result}
