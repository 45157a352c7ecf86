"""Process-wide logging setup for the API and worker entry points."""

from __future__ import annotations

import logging
from typing import Optional

from backend.app.core.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    resolved = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, resolved, logging.INFO))
