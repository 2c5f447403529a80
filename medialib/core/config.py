# File: medialib/core/config.py
"""
Configuration settings for the media library server.

This module defines application settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

import json
import secrets
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values are read from the process environment first and from a ``.env``
    file in the working directory second.
    """

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    PROJECT_NAME: str = "Media Library"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Public address used when rewriting local media paths into URLs
    SERVER_URL: str = "http://localhost"
    SERVER_PORT: int = 5002

    # CORS, a JSON list or a comma-separated string
    BACKEND_CORS_ORIGINS: str = ""

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from a JSON list or a comma-separated string."""
        v = self.BACKEND_CORS_ORIGINS.strip()
        if not v:
            return []
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return [str(origin) for origin in parsed]
        except json.JSONDecodeError:
            pass
        return [i.strip() for i in v.split(",") if i.strip()]

    # Database
    DATABASE_URL: str = "sqlite:///./medialib.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 900

    @field_validator("DATABASE_URL")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Accept the legacy ``postgres://`` scheme used by some hosts."""
        if v.startswith("postgres://"):
            return "postgresql://" + v[len("postgres://"):]
        return v

    # Authentication (single signed token stored in a cookie)
    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    COOKIE_NAME: str = "media_token"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30
    AUTH_DEFAULT_ROLE: str = "admin"

    # Filesystem
    MEDIA_ROOT: str = "."
    MEDIA_EXCLUDED_DIRECTORIES: str = ""

    @property
    def excluded_directories(self) -> List[str]:
        return [
            d.strip().lower()
            for d in self.MEDIA_EXCLUDED_DIRECTORIES.split(",")
            if d.strip()
        ]

    # Listings
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 500

    # Tags
    TAG_MATCH_SOURCE: str = "media_tags"  # "media_tags" or "comma_list"
    POPULATE_TAGS_HIDDEN: bool = True
    RECOMMENDATION_SPARSE_THRESHOLD: int = 10

    @field_validator("TAG_MATCH_SOURCE")
    @classmethod
    def validate_tag_match_source(cls, v: str) -> str:
        v = v.lower()
        if v not in ("media_tags", "comma_list"):
            raise ValueError("TAG_MATCH_SOURCE must be 'media_tags' or 'comma_list'")
        return v

    # Response cache
    CACHE_BACKEND: str = "redis"  # redis, memory or none
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL: int = 300
    CACHE_NAMESPACE: str = "medialib"

    # Thumbnails
    THUMBNAIL_BATCH_SIZE: int = 10
    THUMBNAIL_SIZE_SM: int = 200
    THUMBNAIL_SIZE_MD: int = 600
    THUMBNAIL_SIZE_LG: int = 1200
    FFMPEG_PATH: str = "ffmpeg"
    FFPROBE_PATH: str = "ffprobe"

    # .MOV to .mp4 conversion
    VIDEO_OPTIMIZE_CRF: int = 28
    VIDEO_OPTIMIZE_PRESET: str = "fast"
    VIDEO_OPTIMIZE_TIMEOUT: int = 3600

    @property
    def public_file_base(self) -> str:
        """Base URL under which local media files are served."""
        return f"{self.SERVER_URL}:{self.SERVER_PORT}/file"


# Create settings instance
settings = Settings()
