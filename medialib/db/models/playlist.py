# File: medialib/db/models/playlist.py
"""
Playlist models for the media library.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text

from medialib.db.models.base import AbstractBase, Base, utcnow

# Association table for playlists and media
playlist_media = Table(
    "playlist_media",
    Base.metadata,
    Column(
        "playlist_id",
        Integer,
        ForeignKey("playlists.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "media_id",
        Integer,
        ForeignKey("media.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Playlist(AbstractBase):
    """
    Ordered-by-insertion list of media with its own tags and protection flag.
    """

    __tablename__ = "playlists"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    tags = Column(Text, nullable=True)
    is_protected = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Playlist(id={self.id}, name='{self.name}')>"
