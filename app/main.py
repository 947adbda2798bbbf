"""
Geo-attendance backend - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import (
    attendance_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from app.core.exceptions import AttendanceError
from app.core.logging import setup_logging
from app.core.scheduler import start_scheduler, shutdown_scheduler
from app.core.security import hash_password
from app.db.session import SessionLocal
from app.models.employee import Employee, Role

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)

INITIAL_ADMIN_EMP_CODE = "ADM-001"


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "***"
    if parsed.scheme.startswith("sqlite"):
        return url  # Safe to log path
    if parsed.password:
        netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))
    return url


# Create FastAPI app
app = FastAPI(
    title="Geo-Attendance Backend",
    description="Geofenced punch in/out with heartbeat presence tracking",
    version=settings.VERSION or "1.0.0"
)

# Configure CORS - must be before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers (AttendanceError before its HTTPException base)
app.add_exception_handler(AttendanceError, attendance_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    settings.validate_production()
    masked = _mask_database_url(settings.DATABASE_URL)
    logger.info("DATABASE_URL (app): %s", masked)
    logger.info("Work date timezone: %s", settings.TZ)


@app.on_event("startup")
def bootstrap_initial_admin() -> None:
    """
    Create the initial admin user if no admin exists.
    This ensures the system always has at least one admin user.
    """
    db = SessionLocal()
    try:
        admin_exists = db.query(Employee).filter(
            (Employee.emp_code == INITIAL_ADMIN_EMP_CODE) |
            (Employee.role == Role.ADMIN.value)
        ).first()
        if admin_exists:
            logger.info("Admin user already exists, skipping initial bootstrap")
            return

        logger.info("No admin user found, creating initial admin...")
        db.add(Employee(
            emp_code=INITIAL_ADMIN_EMP_CODE,
            name="System Administrator",
            role=Role.ADMIN.value,
            password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
            active=True,
        ))
        db.commit()
        logger.info("Initial admin user created successfully")
        logger.info("Employee Code: %s", INITIAL_ADMIN_EMP_CODE)
        logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    except OperationalError as e:
        db.rollback()
        # Database not ready yet (tables might not exist)
        if "no such table" in str(e).lower() or "does not exist" in str(e).lower():
            logger.warning("Database tables not ready yet, skipping initial bootstrap")
        else:
            logger.error("Database error during admin bootstrap: %s", e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error during initial admin bootstrap: %s", e)
    finally:
        db.close()


@app.on_event("startup")
def start_background_jobs() -> None:
    start_scheduler()


@app.on_event("shutdown")
def stop_background_jobs() -> None:
    shutdown_scheduler()


def _is_no_such_table(err: BaseException) -> bool:
    msg = str(err).lower()
    return "no such table" in msg or "attendance_days" in msg


async def _handle_operational_error(request, exc: Exception):
    """Missing tables get a clear message; anything else goes to the generic handler."""
    if _is_no_such_table(exc):
        return JSONResponse(
            status_code=500,
            content={"detail": "Run alembic upgrade head"},
        )
    return await generic_exception_handler(request, exc)


app.add_exception_handler(OperationalError, _handle_operational_error)
