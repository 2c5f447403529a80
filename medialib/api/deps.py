# File: medialib/api/deps.py
"""
FastAPI dependencies for the media library.

Provides dependency functions for database sessions, the cookie-based auth
context, the response cache and service injection for API routes.
"""

import logging
from typing import Any, Callable, Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.core.exceptions import ForbiddenException, MediaLibException
from medialib.core.security import AuthContext, resolve_auth_context
from medialib.db.session import Database
from medialib.services.cache_service import CacheService
from medialib.services.file_storage_service import FileStorageService
from medialib.services.service_factory import ServiceFactory

logger = logging.getLogger(__name__)


# --- Database Session Dependency ---

def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """One session per request, closed when the response is sent."""
    yield from database.get_db()


# --- Auth ---

def get_auth_context(request: Request) -> AuthContext:
    """
    Read the auth cookie. A missing or bad token yields an anonymous context,
    never an error.
    """
    return resolve_auth_context(request.cookies.get(settings.COOKIE_NAME))


def require_authenticated(
    request: Request, auth: AuthContext = Depends(get_auth_context)
) -> AuthContext:
    """Reject anonymous callers with 403."""
    if not auth.is_authenticated:
        logger.info(f"Anonymous caller refused: {request.method} {request.url.path}")
        raise ForbiddenException(operation=f"{request.method} {request.url.path}")
    return auth


# --- Services ---

def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache_service


def get_file_storage() -> FileStorageService:
    return FileStorageService(settings.MEDIA_ROOT)


def get_service_factory(
    db: Session = Depends(get_db),
    cache_service: CacheService = Depends(get_cache_service),
    storage: FileStorageService = Depends(get_file_storage),
) -> ServiceFactory:
    """Provides a ServiceFactory bound to the request session."""
    return ServiceFactory(db, cache_service=cache_service, file_storage_service=storage)


# --- Helpers ---

def http_error(e: MediaLibException) -> HTTPException:
    """Translate a domain exception into the HTTPException for its status."""
    if e.status_code >= 500:
        logger.error(f"{e.__class__.__name__}: {e.message}", exc_info=True)
    return HTTPException(status_code=e.status_code, detail=e.message)


def cached_listing(
    request: Request,
    cache_service: CacheService,
    auth: AuthContext,
    build: Callable[[], Any],
) -> Any:
    """
    Serve a listing from the response cache, building and storing it on a
    miss. Cache trouble only ever means a miss.
    """
    viewer = "admin" if auth.is_admin else "public"
    key = cache_service.listing_key(
        request.url.path, request.query_params.multi_items(), viewer
    )
    cached = cache_service.get(key)
    if cached.hit:
        return cached.value

    value = build()
    cache_service.set(key, value)
    return value
