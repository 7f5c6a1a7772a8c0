"""Structured logging for the engine (structlog), plus levels for the database libraries."""
import logging
import sys
from typing import Optional

import structlog

from snapshot_engine.config import Settings, get_settings

# Loggers owned by the database stack; SQL_LOG_LEVEL governs them, not LOG_LEVEL.
DB_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "asyncpg", "alembic")


def _level(name: str, default: int) -> int:
    return getattr(logging, name.upper(), default)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Engine events go through structlog (console renderer for APP_ENV=local, JSON
    otherwise) at LOG_LEVEL. Standard-library loggers share stdout; the database
    loggers are pinned to SQL_LOG_LEVEL so a DEBUG engine log does not dump every
    statement of a batch.
    """
    settings = settings or get_settings()
    level = _level(settings.log_level, logging.INFO)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.app_env == "local"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    db_level = _level(settings.sql_log_level, logging.WARNING)
    for name in DB_LOGGERS:
        logging.getLogger(name).setLevel(db_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
