# File: medialib/services/service_factory.py
"""
Factory for creating service instances in the media library.

Endpoints build one factory per request so that every service shares the
request's session, the application cache and the media-root storage.
"""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.services.file_storage_service import FileStorageService


class ServiceFactory:
    """
    Factory for creating service instances with proper dependencies.
    """

    def __init__(
        self,
        session: Session,
        cache_service=None,
        file_storage_service: Optional[FileStorageService] = None,
    ):
        """
        Initialize the service factory with dependencies.

        Args:
            session: Database session for persistence operations
            cache_service: Optional cache service invalidated after writes
            file_storage_service: Optional storage rooted at MEDIA_ROOT
        """
        self.session = session
        self.cache_service = cache_service
        self.file_storage_service = file_storage_service or FileStorageService(
            settings.MEDIA_ROOT
        )

        # Service instance cache, one instance per request
        self._service_instances: Dict[str, Any] = {}

    def _cached(self, name: str, build):
        if name not in self._service_instances:
            self._service_instances[name] = build()
        return self._service_instances[name]

    def get_media_service(self) -> "MediaService":
        from medialib.services.media_service import MediaService

        return self._cached(
            "media_service",
            lambda: MediaService(
                self.session, self.cache_service, self.file_storage_service
            ),
        )

    def get_tag_service(self) -> "TagService":
        from medialib.services.tag_service import TagService

        return self._cached(
            "tag_service", lambda: TagService(self.session, self.cache_service)
        )

    def get_recommendation_service(self) -> "RecommendationService":
        from medialib.services.recommendation_service import RecommendationService

        return self._cached(
            "recommendation_service", lambda: RecommendationService(self.session)
        )

    def get_playlist_service(self) -> "PlaylistService":
        from medialib.services.playlist_service import PlaylistService

        return self._cached(
            "playlist_service", lambda: PlaylistService(self.session, self.cache_service)
        )

    def get_album_service(self) -> "AlbumService":
        from medialib.services.album_service import AlbumService

        return self._cached(
            "album_service", lambda: AlbumService(self.session, self.cache_service)
        )

    def get_favorite_service(self) -> "FavoriteService":
        from medialib.services.favorite_service import FavoriteService

        return self._cached("favorite_service", lambda: FavoriteService(self.session))

    def get_thumbnail_service(self) -> "ThumbnailService":
        from medialib.services.thumbnail_service import ThumbnailService

        return self._cached(
            "thumbnail_service", lambda: ThumbnailService(self.file_storage_service)
        )

    def get_media_scanner_service(self) -> "MediaScannerService":
        from medialib.services.media_scanner_service import MediaScannerService

        return self._cached(
            "media_scanner_service",
            lambda: MediaScannerService(
                self.session,
                storage=self.file_storage_service,
                thumbnail_service=self.get_thumbnail_service(),
                cache_service=self.cache_service,
            ),
        )

    def get_created_date_service(self) -> "CreatedDateService":
        from medialib.services.created_date_service import CreatedDateService

        return self._cached(
            "created_date_service",
            lambda: CreatedDateService(
                self.session, self.file_storage_service, self.cache_service
            ),
        )

    def get_video_optimizer_service(self) -> "VideoOptimizerService":
        from medialib.services.video_optimizer_service import VideoOptimizerService

        return self._cached(
            "video_optimizer_service",
            lambda: VideoOptimizerService(
                self.session, self.file_storage_service, self.cache_service
            ),
        )
