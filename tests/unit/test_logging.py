"""Unit tests for logging setup (habitquest/core/logging.py)"""
import logging

import pytest
import structlog
from structlog.processors import JSONRenderer

from habitquest.core.config import Settings
from habitquest.core.logging import SQL_LOGGER, app_context, build_renderer, setup_logging


@pytest.fixture
def restore_logging():
    sql_logger = logging.getLogger(SQL_LOGGER)
    level = sql_logger.level
    yield
    sql_logger.setLevel(level)
    structlog.reset_defaults()


def test_app_context_stamps_events():
    processor = app_context(Settings(APP_NAME="quest", ENVIRONMENT="staging"))

    event = processor(None, "info", {"event": "Wheel spun"})

    assert event["app"] == "quest"
    assert event["environment"] == "staging"
    assert event["version"] == "1.0.0"


def test_app_context_keeps_explicit_values():
    processor = app_context(Settings())

    event = processor(None, "info", {"event": "x", "environment": "override"})

    assert event["environment"] == "override"


def test_production_always_renders_json():
    renderer = build_renderer(Settings(LOG_FORMAT="plain", ENVIRONMENT="production"))
    assert isinstance(renderer, JSONRenderer)


def test_plain_format_outside_production():
    renderer = build_renderer(Settings(LOG_FORMAT="plain"))
    assert not isinstance(renderer, JSONRenderer)


@pytest.mark.parametrize("echo, level", [(True, logging.INFO), (False, logging.WARNING)])
def test_sql_statement_logging_follows_echo(restore_logging, echo, level):
    setup_logging(Settings(DATABASE_ECHO=echo))
    assert logging.getLogger(SQL_LOGGER).level == level
