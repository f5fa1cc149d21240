"""Process-wide logging setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pkgallery.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger.

    Args:
        settings: Settings providing ``log_level``. INFO when omitted.
    """
    level_name = settings.log_level if settings else "INFO"
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled by DatabaseSettings.echo, keep the engine logger quiet otherwise
    if settings is None or not settings.database.echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
