"""
Day Planner Backend — Logging Configuration
============================================

What:  One-call logging setup shared by the web app lifespan and the
       reminder console script.
How:   stdlib basicConfig to stdout; chatty third-party loggers raised to WARNING.
"""

import logging
import sys

from dayplanner.config import settings


def setup_logging() -> None:
    """Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s on stdout."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
