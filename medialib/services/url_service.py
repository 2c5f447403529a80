# File: medialib/services/url_service.py
"""
Rewrites locally stored media paths into absolute URLs.

Every response that carries media rows goes through ``rewrite_media_paths``
so listings, favorites, playlist and album media and tag thumbnails expose
the same URLs.
"""

from typing import Any, Dict, Iterable, List, Optional

from medialib.core.config import settings
from medialib.db.models.media import LOCAL_SERVER

PATH_FIELDS = ("file_path", "thumbnail_path", "thumbnail_md", "thumbnail_lg")
THUMBNAIL_PREFERENCE = ("thumbnail_path", "thumbnail_md", "file_path")


def file_url(relative_path: str, base_url: Optional[str] = None) -> str:
    """
    Build the public URL of a file stored under the media root.

    Backslashes become forward slashes and leading slashes are dropped so the
    path is always relative to ``/file/``.
    """
    base = base_url or settings.public_file_base
    normalized = relative_path.replace("\\", "/").lstrip("/")
    return f"{base}/{normalized}"


def rewrite_media_paths(
    row: Dict[str, Any], base_url: Optional[str] = None
) -> Dict[str, Any]:
    """
    Return a copy of a media dict with local paths turned into URLs.

    Rows stored on another server are returned unmodified. Empty and NULL
    paths are left as they are.
    """
    if row.get("server_location") != LOCAL_SERVER:
        return row
    rewritten = dict(row)
    for field in PATH_FIELDS:
        value = rewritten.get(field)
        if value:
            rewritten[field] = file_url(value, base_url)
    return rewritten


def rewrite_many(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [rewrite_media_paths(row) for row in rows]


def pick_thumbnail(row: Optional[Dict[str, Any]]) -> Optional[str]:
    """First non-empty of thumbnail_path, thumbnail_md, file_path."""
    if not row:
        return None
    for field in THUMBNAIL_PREFERENCE:
        if row.get(field):
            return row[field]
    return None
