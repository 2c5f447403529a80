# File: medialib/db/models/album.py
"""
Album models for the media library.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)

from medialib.db.models.base import AbstractBase, Base, SoftDeleteMixin, TimestampMixin

# Association table for albums and media
album_media = Table(
    "album_media",
    Base.metadata,
    Column(
        "album_id",
        Integer,
        ForeignKey("albums.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "media_id",
        Integer,
        ForeignKey("media.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Album(AbstractBase, TimestampMixin, SoftDeleteMixin):
    """
    A curated, optionally nested collection of media.
    """

    __tablename__ = "albums"

    title = Column(String(255), nullable=False)
    cover_url = Column(String(1024), nullable=True)
    fallback_cover_url = Column(String(1024), nullable=True)
    parent = Column(
        Integer, ForeignKey("albums.id", ondelete="SET NULL"), nullable=True
    )
    tags = Column(Text, nullable=True)
    is_protected = Column(Boolean, nullable=False, default=False)
    is_hidden = Column(Boolean, nullable=False, default=False)
    online_album_urls = Column(JSON, nullable=True)
    owner = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<Album(id={self.id}, title='{self.title}')>"


class FavoriteAlbum(AbstractBase):
    """
    Album bookmarked by a user identifier.
    """

    __tablename__ = "favorite_albums"

    user_identifier = Column(String(255), nullable=False, index=True)
    album_id = Column(
        Integer, ForeignKey("albums.id", ondelete="CASCADE"), nullable=False
    )
