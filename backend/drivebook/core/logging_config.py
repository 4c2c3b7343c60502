# backend/drivebook/core/logging_config.py
"""Process-wide logging setup shared by the API and the Celery worker."""

import logging
from typing import Optional

from .config import settings
from .request_context import attach_request_id_filter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    attach_request_id_filter()
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
