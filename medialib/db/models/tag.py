# File: medialib/db/models/tag.py
"""
Tag models for the media library.

Tags are identified by name. The normalized ``media_tags`` join table uses
the tag's name, not its surrogate id, as the foreign key.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from medialib.db.models.base import AbstractBase, Base, SoftDeleteMixin, utcnow

# Known tag types; any other value (or NULL) is an untyped tag
TAG_TYPE_ALBUM = "album"
TAG_TYPE_PERSON = "person"
TAG_TYPE_STAGE = "stage"


class Tag(AbstractBase, SoftDeleteMixin):
    """
    Entry in the tag registry.
    """

    __tablename__ = "tags"

    name = Column(String(255), nullable=False, unique=True)
    type = Column(String(50), nullable=True, index=True)
    is_protected = Column(Boolean, nullable=False, default=False)
    is_hidden = Column(Boolean, nullable=False, default=False)
    parent = Column(
        Integer, ForeignKey("tags.id", ondelete="SET NULL"), nullable=True
    )
    media_tags = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}', type='{self.type}')>"


class MediaTag(Base):
    """
    Normalized media/tag membership keyed by (media_id, tag_name).
    """

    __tablename__ = "media_tags"

    media_id = Column(
        Integer, ForeignKey("media.id", ondelete="CASCADE"), primary_key=True
    )
    tag_name = Column(
        String(255),
        ForeignKey("tags.name", ondelete="CASCADE", onupdate="CASCADE"),
        primary_key=True,
        index=True,
    )

    def __repr__(self):
        return f"<MediaTag(media={self.media_id}, tag='{self.tag_name}')>"
