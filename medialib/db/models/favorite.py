# File: medialib/db/models/favorite.py
"""
Media favorites, one row per (user, media) bookmark.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from medialib.db.models.base import AbstractBase, utcnow


class Favorite(AbstractBase):
    __tablename__ = "favorites"

    user_id = Column(String(255), nullable=False, index=True)
    media_id = Column(
        Integer, ForeignKey("media.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime, default=utcnow)

    # A user bookmarks a media once
    __table_args__ = (UniqueConstraint("user_id", "media_id"),)

    def __repr__(self):
        return f"<Favorite(user='{self.user_id}', media={self.media_id})>"
