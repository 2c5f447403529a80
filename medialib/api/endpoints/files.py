# File: medialib/api/endpoints/files.py
"""
Serves media files from MEDIA_ROOT.

Paths are resolved inside the root; anything that would leave it (``..``,
absolute paths, symlinks pointing outside) is answered like a missing file.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from medialib.api.deps import get_file_storage
from medialib.core.exceptions import InvalidPathException
from medialib.services.file_storage_service import FileStorageService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{file_path:path}")
def serve_file(
    file_path: str,
    storage: FileStorageService = Depends(get_file_storage),
) -> FileResponse:
    try:
        target = storage.resolve(file_path)
    except InvalidPathException as e:
        logger.warning(f"Refused file request '{file_path}': {e.message}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    if not target.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(target)
