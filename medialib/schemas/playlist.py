# File: medialib/schemas/playlist.py
"""
Schemas for playlists, albums and favorites.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Playlist name")
    description: Optional[str] = None
    tags: Optional[str] = None
    is_protected: bool = False


class PlaylistResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    tags: Optional[str] = None
    is_protected: bool = False
    created_at: Optional[datetime] = None


class MediaIdsRequest(BaseModel):
    mediaIds: List[int]


class MediaAction(BaseModel):
    """An ``in``/``out`` membership change. The action is checked per element."""
    id: int
    action: str


class MediaActionsRequest(BaseModel):
    mediaActions: List[MediaAction]


class AlbumCreate(BaseModel):
    title: str = Field(..., min_length=1)
    cover_url: Optional[str] = None
    fallback_cover_url: Optional[str] = None
    parent: Optional[int] = None
    tags: Optional[str] = None
    is_protected: bool = False
    is_hidden: bool = False
    online_album_urls: Optional[List[str]] = None


class AlbumResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    cover_url: Optional[str] = None
    fallback_cover_url: Optional[str] = None
    parent: Optional[int] = None
    tags: Optional[str] = None
    is_protected: bool = False
    is_hidden: bool = False
    online_album_urls: Optional[List[str]] = None
    owner: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FavoriteRequest(BaseModel):
    media_id: int


class FavoriteAlbumRequest(BaseModel):
    album_id: int
    user_identifier: Optional[str] = Field(
        None, description="Defaults to the token subject"
    )

