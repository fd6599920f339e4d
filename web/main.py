"""FastAPI application for the travel journal API"""

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from travel_journal import __version__
from travel_journal.services.auth_service import AuthService
from travel_journal.services.media_service import MediaService
from travel_journal.services.story_service import StoryService
from travel_journal.services.user_store import UserStore
from travel_journal.store.document_store import DocumentStore
from travel_journal.utils.config import Settings, load_settings
from travel_journal.utils.exceptions import AuthError, TravelJournalError
from travel_journal.utils.logger import get_logger, is_configured, setup_logging

from .api import error_response, router as api_router

logger = get_logger(__name__)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TravelJournalError)
    async def travel_journal_error_handler(request: Request, exc: TravelJournalError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        if isinstance(exc, AuthError) and exc.status_code == 401:
            return error_response(exc.message, exc.status_code, **{"WWW-Authenticate": "Bearer"})
        return error_response(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "body"
        return error_response(f"Invalid {field}: {first.get('msg', 'malformed request')}")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path, error=str(exc))
        return error_response(str(exc) or "Internal Server Error", 500)


def create_app(settings: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    """
    Build the application with its services wired to one store client.

    settings defaults to config/settings.yaml; store defaults to the
    configured connection string.
    """
    settings = settings or load_settings()

    if not is_configured():
        setup_logging(
            level=settings.logging.level,
            fmt=settings.logging.format,
            file_path=settings.logging.file_path,
            max_bytes=settings.logging.max_bytes,
            backup_count=settings.logging.backup_count,
        )

    store = store or DocumentStore.from_connection_string(settings.database.connection_string)
    media_service = MediaService(settings.media.upload_dir, base_url=settings.app.base_url)
    assets_dir = Path(settings.media.assets_dir)
    assets_dir.mkdir(parents=True, exist_ok=True)

    app = FastAPI(
        title=settings.app.name,
        description="REST API for a personal travel journal",
        version=__version__,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.media_service = media_service
    app.state.auth_service = AuthService(UserStore(store), settings.auth)
    app.state.story_service = StoryService(
        store, media_service, placeholder_image_url=settings.placeholder_image_url
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials="*" not in settings.cors.origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(api_router)
    app.mount("/uploads", StaticFiles(directory=media_service.upload_dir), name="uploads")
    app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")

    logger.info(
        "Application created",
        environment=settings.app.environment,
        store=str(store.root),
        upload_dir=str(media_service.upload_dir),
    )
    return app
