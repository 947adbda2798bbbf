"""
Logging configuration for the geo-attendance backend
"""
import logging
import sys
from app.core.config import settings

# Third-party loggers kept quiet unless they have something to say
_LIBRARY_LEVELS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "apscheduler": logging.WARNING,
}


def setup_logging() -> None:
    """
    Configure root logging from settings.LOG_LEVEL.

    Attendance services log state transitions (punch in/out, marked in/out,
    auto punch-out) at INFO and persistence details at DEBUG.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, env=%s, tz=%s", settings.LOG_LEVEL, settings.APP_ENV, settings.TZ
    )
