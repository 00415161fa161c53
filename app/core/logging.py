"""
Logging for the EOD Monitor service

Everything goes to stdout; app.* loggers follow LOG_LEVEL while framework
and driver loggers stay at WARNING unless the app itself is at DEBUG.
"""
import logging
import sys
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "multipart")


def setup_logging(level: Optional[str] = None) -> int:
    """Configure the root logger and return the numeric level applied"""
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("app").setLevel(log_level)

    # SQL statements are only worth seeing when debugging outside prod
    noisy_level = logging.INFO if log_level == logging.DEBUG and settings.APP_ENV != "prod" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    logging.getLogger(__name__).info("Logging configured: level=%s, env=%s", level_name, settings.APP_ENV)
    return log_level
