# File: medialib/db/models/media.py
"""
Media model for the media library.

A media row describes one file on disk (or at a remote location): its type,
duration, thumbnails and the legacy comma-joined tag list.
"""

from sqlalchemy import Boolean, Column, DateTime, Float, String, Text

from medialib.db.models.base import AbstractBase, SoftDeleteMixin, utcnow

FILE_TYPES = ("photo", "video", "music", "document")
LOCAL_SERVER = "local"


class Media(AbstractBase, SoftDeleteMixin):
    """
    One indexed file.

    ``file_path`` is unique across all rows; a soft-deleted row keeps its path
    reserved. ``tags`` is the legacy comma-joined list, mirrored into the
    ``media_tags`` join table.
    """

    __tablename__ = "media"

    title = Column(String(255), nullable=True)
    file_path = Column(String(1024), nullable=False, unique=True)
    file_type = Column(String(20), nullable=True, index=True)
    duration = Column(Float, nullable=True)
    tags = Column(Text, nullable=True)
    thumbnail_path = Column(String(1024), nullable=True)
    thumbnail_md = Column(String(1024), nullable=True)
    thumbnail_lg = Column(String(1024), nullable=True)
    server_location = Column(String(255), nullable=False, default=LOCAL_SERVER)
    optimized_path = Column(String(1024), nullable=True)
    is_protected = Column(Boolean, nullable=False, default=False, index=True)
    protected_by = Column(String(255), nullable=True)
    user_protecting = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_local(self) -> bool:
        return self.server_location == LOCAL_SERVER

    @property
    def tag_list(self):
        """The comma-joined tags as a list, trimmed, empties dropped."""
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    def __repr__(self):
        return f"<Media(id={self.id}, file_path='{self.file_path}')>"
