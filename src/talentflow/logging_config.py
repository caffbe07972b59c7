from __future__ import annotations

import logging

from talentflow.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "multipart")

_LOG_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    """Configure process logging once. ``level`` overrides ``LOG_LEVEL``."""
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("talentflow").setLevel(resolved)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    _LOG_CONFIGURED = True
