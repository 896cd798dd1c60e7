"""
Centralized logging configuration.

App code logs at LOG_LEVEL; HTTP clients and database drivers are kept at
WARNING so worker ticks stay readable.
"""

import logging

from eventhub.settings import settings


def configure_logging(level: str | None = None):
    log_level = (level or settings.LOG_LEVEL).upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    for noisy in ("httpx", "httpcore", "sqlalchemy", "sqlalchemy.engine", "asyncpg", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger("eventhub").setLevel(getattr(logging, log_level, logging.INFO))
    logging.getLogger("worker_sdk").setLevel(getattr(logging, log_level, logging.INFO))
