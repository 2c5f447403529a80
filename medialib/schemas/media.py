# File: medialib/schemas/media.py
"""
Schemas for Media entities in the media library API.

This module provides Pydantic models for validating and serializing
media data throughout the API layer.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator

from medialib.db.models.media import FILE_TYPES


class MediaBase(BaseModel):
    """
    Base schema with common media attributes.
    """
    title: Optional[str] = Field(None, description="Display title")
    file_type: Optional[str] = Field(None, description="photo, video, music or document")
    duration: Optional[float] = Field(None, description="Duration in seconds")
    tags: Optional[str] = Field(None, description="Comma-joined tag names")
    thumbnail_path: Optional[str] = None
    thumbnail_md: Optional[str] = None
    thumbnail_lg: Optional[str] = None
    server_location: Optional[str] = Field(None, description="'local' or a remote location")
    optimized_path: Optional[str] = None
    is_protected: Optional[bool] = None
    protected_by: Optional[str] = None
    user_protecting: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("file_type")
    @classmethod
    def validate_file_type(cls, v):
        if v is not None and v not in FILE_TYPES:
            raise ValueError(f"File type must be one of {', '.join(FILE_TYPES)}")
        return v


class MediaCreate(MediaBase):
    """
    One element of a batch insert. ``file_path`` identifies the element.
    """
    model_config = ConfigDict(extra="ignore")

    file_path: str = Field(..., min_length=1, description="Path relative to the media root")
    server_location: str = "local"
    is_protected: bool = False


class MediaUpdate(MediaBase):
    """
    One element of a batch update; only provided fields are applied.
    """
    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Media to update")
    file_path: Optional[str] = Field(None, min_length=1)


class MediaDeleteItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_path: str = Field(..., min_length=1)


class MediaResponse(MediaBase):
    """
    Media as returned by the API, with local paths rewritten to URLs.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_path: str
    deleted_at: Optional[datetime] = None


class BatchTagsRequest(BaseModel):
    ids: List[int] = Field(..., description="Media ids to change")
    tags: StrictStr = Field(..., description="Comma-separated tag names")


class BatchProtectedRequest(BaseModel):
    ids: List[int]
    is_protected: StrictBool
