"""
Logging configuration for the application.
"""
import logging
from typing import Optional
from clubfee.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from settings (called once at startup)."""
    log_level = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    # SQL echo is controlled by DB_ECHO, keep the engine logger quiet otherwise
    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
