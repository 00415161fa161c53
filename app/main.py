"""
EOD Monitor Backend - Main Application Entry Point
"""
import logging
import os
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import (
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from app.core.logging import setup_logging
from app.core.security import hash_password
from app.db.session import SessionLocal
from app.models.user import Role, User
from app.services.session_service import purge_expired_sessions

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)

settings.validate_production()


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    try:
        parsed = urlparse(url)
        if parsed.scheme == "sqlite":
            return url
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        return "***"
    return url


app = FastAPI(
    title="EOD Monitor Backend",
    description="End-of-day reporting with role-scoped access and temporary viewer accounts",
    version=settings.VERSION or "1.0.0"
)

# Credentialed CORS: the session travels in a cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(api_router, prefix="/api")

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    masked = _mask_database_url(settings.DATABASE_URL)
    logger.info("DATABASE_URL (app): %s", masked)


@app.on_event("startup")
def bootstrap_initial_admin() -> None:
    """
    Create the initial admin identity if no admin exists yet

    This ensures the system always has at least one account that can
    manage the others.
    """
    db = SessionLocal()
    try:
        if db.query(User.id).filter(User.role == Role.ADMIN.value).first():
            logger.info("Admin user already exists, skipping initial bootstrap")
            return

        if db.query(User.id).filter(User.username == settings.INITIAL_ADMIN_USERNAME).first():
            logger.warning(
                "No admin exists but username %s is taken; skipping bootstrap",
                settings.INITIAL_ADMIN_USERNAME,
            )
            return

        db.add(User(
            username=settings.INITIAL_ADMIN_USERNAME,
            password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
            role=Role.ADMIN.value,
            is_active=True,
        ))
        db.commit()
        logger.info("Initial admin user created: %s", settings.INITIAL_ADMIN_USERNAME)
        logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    except OperationalError as e:
        db.rollback()
        if "no such table" in str(e).lower():
            logger.warning("Database tables not ready yet, run alembic upgrade head")
        else:
            logger.error("Database error during admin bootstrap: %s", e)
    finally:
        db.close()


@app.on_event("startup")
def purge_sessions_on_startup() -> None:
    """Expired sessions are also dropped lazily on lookup; this clears the backlog"""
    db = SessionLocal()
    try:
        purge_expired_sessions(db)
    except OperationalError as e:
        db.rollback()
        logger.warning("Could not purge expired sessions: %s", e)
    finally:
        db.close()
