"""Structured logging configuration."""

import logging
import sys
from typing import Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import add_logger_name
from structlog.types import Processor

from habitquest.core.config import Settings, get_settings

SQL_LOGGER = "sqlalchemy.engine"


def app_context(app_settings: Settings) -> Processor:
    """Processor stamping every event with the service name, version and environment."""
    context = {
        "app": app_settings.APP_NAME,
        "version": app_settings.APP_VERSION,
        "environment": app_settings.ENVIRONMENT,
    }

    def add_app_context(logger, method_name, event_dict):
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_app_context


def build_renderer(app_settings: Settings) -> Processor:
    # Production always ships JSON lines
    if app_settings.LOG_FORMAT == "json" or app_settings.is_production():
        return JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(app_settings: Optional[Settings] = None):
    """Configure structlog and route SQLAlchemy statement logging.

    SQL statements are only logged when `DATABASE_ECHO` is set; they go
    through the same stdout handler as everything else.
    """
    app_settings = app_settings or get_settings()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            app_context(app_settings),
            add_log_level,
            add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            TimeStamper(fmt="iso"),
            structlog.processors.dict_tracebacks,
            build_renderer(app_settings),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, app_settings.LOG_LEVEL),
    )

    logging.getLogger(SQL_LOGGER).setLevel(logging.INFO if app_settings.DATABASE_ECHO else logging.WARNING)
