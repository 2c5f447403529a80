"""
Initializes the models package for SQLAlchemy declarative base.

Importing this package registers every table on ``Base.metadata`` so that
``Base.metadata.create_all()`` and Alembic see the whole schema.
"""

from medialib.db.models.base import Base
from medialib.db.models.media import Media
from medialib.db.models.tag import MediaTag, Tag
from medialib.db.models.album import Album, FavoriteAlbum, album_media
from medialib.db.models.playlist import Playlist, playlist_media
from medialib.db.models.favorite import Favorite

__all__ = [
    "Base",
    "Media",
    "Tag",
    "MediaTag",
    "Album",
    "FavoriteAlbum",
    "album_media",
    "Playlist",
    "playlist_media",
    "Favorite",
]
