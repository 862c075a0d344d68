"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import __version__
from . import models  # noqa: F401  (registers tables on Base.metadata)
from .api import folders_router
from .core.config import settings, ConfigurationError, Environment, RemoteTransport
from .core.logging_config import setup_logging
from .database import engine, Base, get_db, is_postgresql, DATABASE_URL
from .exceptions import MediaFoldersError
from .middleware.exception_handler import mediafolders_exception_handler
from .middleware.request_context import RequestContextMiddleware

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        if not settings.auth_enabled:
            logger.warning(
                "SECURITY: Authentication is disabled (AUTH_ENABLED=false). "
                "Owners are identified by the X-Owner-Id header."
            )
        if settings.remote_transport == RemoteTransport.LOCAL:
            logger.warning(
                "REMOTE_TRANSPORT=local: folder commands run on this host under %s",
                settings.remote_base_path,
            )

    logger.info(f"Connecting to database: {_mask_url(DATABASE_URL)}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.critical(f"Database initialisation failed: {e}")
        raise SystemExit(1) from e

    yield


app = FastAPI(
    title="mediafolders API",
    description=(
        "Folder management for media owners whose files live on remote hosts. "
        "Keeps the media catalog and the remote directory tree in step across "
        "create, rename, delete and sync."
    ),
    version=__version__,
    license_info={"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Owner-Id"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(MediaFoldersError, mediafolders_exception_handler)

logger.info(
    "mediafolders API started | env=%s | db=%s | auth=%s | transport=%s",
    settings.environment.value,
    "PostgreSQL" if is_postgresql() else "SQLite",
    "enabled" if settings.auth_enabled else "disabled",
    settings.remote_transport.value,
)

app.include_router(folders_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "mediafolders API",
        "version": __version__,
        "status": "running"
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Database status and uptime. Never raises, returns degraded status on DB failure."""
    db_status = "ok"
    folder_count = 0
    try:
        db.execute(text("SELECT 1"))
        folder_count = db.execute(text("SELECT COUNT(*) FROM folders WHERE status = 'active'")).scalar() or 0
    except Exception:
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": __version__,
        "folder_count": folder_count,
    }
