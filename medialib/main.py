# File: medialib/main.py
"""
Main application file for the media library server.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from medialib.api.api import api_router
from medialib.core.config import settings
from medialib.core.exceptions import MediaLibException
from medialib.db.session import Database
from medialib.services.cache_service import CacheService

# --- Logging Configuration ---
LOG_LEVEL = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("medialib")
logger.setLevel(LOG_LEVEL)
# --- END: Logging Configuration ---

DEV_FALLBACK_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def create_app(
    database: Optional[Database] = None,
    cache_service: Optional[CacheService] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        database: Database to use; built from DATABASE_URL when omitted
        cache_service: Response cache; built from CACHE_BACKEND when omitted

    Both objects are created (if needed) and health-checked when the
    application starts, stored on ``app.state``, and the database engine is
    disposed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database()
        db.connect()
        app.state.database = db
        app.state.cache_service = cache_service or CacheService.from_settings(settings)
        logger.info(
            f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT}), "
            f"media root: {settings.MEDIA_ROOT}"
        )
        try:
            yield
        finally:
            db.dispose()
            logger.info(f"{settings.PROJECT_NAME} shut down")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API for a personal media library",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Set up CORS
    origins = settings.cors_origins
    if not origins:
        logger.warning(
            f"No CORS origins configured in settings, using development fallbacks: {DEV_FALLBACK_ORIGINS}"
        )
        origins = DEV_FALLBACK_ORIGINS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400,
    )

    # --- Error Handlers ---
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        error_details = jsonable_encoder(exc.errors())
        logger.warning(f"Request validation failed for {request.method} {request.url.path}: {error_details}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid data format", "details": error_details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(MediaLibException)
    async def medialib_exception_handler(request: Request, exc: MediaLibException):
        if exc.status_code >= 500:
            logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}", exc_info=exc)
            return JSONResponse(status_code=exc.status_code, content={"error": "Internal server error"})
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.to_dict()}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # Log requests
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = datetime.now()
        logger.info(f"-> Request: {request.method} {request.url.path}")
        try:
            response = await call_next(request)
            process_time = (datetime.now() - start_time).total_seconds()
            logger.info(f"<- Response: {response.status_code} ({process_time:.4f}s)")
            return response
        except Exception as e:
            process_time = (datetime.now() - start_time).total_seconds()
            logger.exception(
                f"!! Error during request processing for {request.method} {request.url.path} ({process_time:.4f}s): {e}"
            )
            raise e

    app.include_router(api_router)

    # Root and Health Check Endpoints
    @app.get("/", tags=["Root"], summary="API Root Endpoint")
    def read_root():
        """Provides basic API information and links to documentation."""
        return {
            "message": f"Welcome to {settings.PROJECT_NAME} API",
            "project_name": settings.PROJECT_NAME,
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
            "docs_url": app.docs_url,
        }

    @app.get("/health", tags=["Health"], summary="API Health Check")
    def health_check(request: Request):
        """Returns the operational status of the API and its backing stores."""
        db_ok = request.app.state.database.health_check()
        cache_stats = request.app.state.cache_service.get_stats()
        return JSONResponse(
            status_code=status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ok" if db_ok else "degraded",
                "database": db_ok,
                "cache": cache_stats,
                "timestamp": datetime.now().isoformat(),
            },
        )

    return app
