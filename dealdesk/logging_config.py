"""Process-wide logging setup."""

from __future__ import annotations

import logging

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
    # SQL echo is controlled by DEALDESK_ECHO_SQL, not the root level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
