# File: medialib/schemas/tag.py
"""
Schemas for Tag entities in the media library API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TagResponse(BaseModel):
    """
    Schema for tag responses from the API.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: Optional[str] = None
    is_protected: bool = False
    is_hidden: bool = False
    parent: Optional[int] = None
    created_at: Optional[datetime] = None
    thumbnail: Optional[str] = Field(None, description="Most recent media thumbnail")
    media_id: Optional[int] = None
    media_count: Optional[int] = None


class TagUpdate(BaseModel):
    """
    Schema for updating an existing tag.

    All fields are optional to allow partial updates.
    """
    model_config = ConfigDict(extra="forbid")

    type: Optional[str] = Field(None, description="album, person, stage or another category")
    is_protected: Optional[bool] = None
    is_hidden: Optional[bool] = None
    parent: Optional[int] = None


class PopulateTagsRequest(BaseModel):
    startId: int = Field(0, ge=0, description="Only scan media with id >= startId")


class PopulateTagsResponse(BaseModel):
    message: str
    createdCount: int
    restoredCount: int
    createdTags: List[str]
    restoredTags: List[str]


class CheckTagsResponse(BaseModel):
    message: str
    checkedCount: int
    deletedCount: int
    deletedTags: List[str]


class RecommendedTag(BaseModel):
    name: str
    type: Optional[str] = None
    media_id: Optional[int] = None
    thumbnail: Optional[str] = None
    count: int = 0


class RecommendationResponse(BaseModel):
    tag: str
    type: Optional[str] = None
    data: List[RecommendedTag]
