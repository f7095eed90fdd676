"""Logging setup shared by the server and the headless runner."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(*, level: str | None = None, include_uvicorn: bool = True) -> logging.Logger:
    """Install a root handler and set the ``driftfish`` logger level.

    ``level`` wins over ``DRIFTFISH_LOG_LEVEL``; INFO when neither is set.
    """
    resolved = (level or os.getenv("DRIFTFISH_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt=DATE_FORMAT)

    package_logger = logging.getLogger("driftfish")
    package_logger.setLevel(resolved)
    if include_uvicorn:
        for name in UVICORN_LOGGERS:
            logging.getLogger(name).setLevel(resolved)
    return package_logger
