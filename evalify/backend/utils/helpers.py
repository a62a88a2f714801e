"""
Evalify Quiz Attempt Service
Shared helpers: logging setup and UTC time handling
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from ...config import get_settings


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging from settings"""
    settings = get_settings()
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=settings.LOG_FORMAT,
        stream=sys.stdout,
        force=True
    )

    # Quiet noisy libraries unless debugging
    if not settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("pymongo").setLevel(logging.WARNING)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"
