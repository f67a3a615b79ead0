"""Unit tests for per-category log level resolution."""

import logging

from chat_backend.config import Settings
from chat_backend.infrastructure.logging.log_config import category_levels, setup_logging


def test_category_levels_follow_settings_fields():
    settings = Settings(_env_file=None, log_level_sql="DEBUG", log_level_mcp="error")

    levels = category_levels(settings)

    assert levels["sqlalchemy.engine"] == logging.DEBUG
    assert levels["aiosqlite"] == logging.DEBUG
    assert levels["chat_backend.infrastructure.mcp"] == logging.ERROR
    assert levels["httpx"] == logging.WARNING


def test_unknown_level_name_falls_back_to_info():
    settings = Settings(_env_file=None, log_level_orchestrator="LOUD")

    assert category_levels(settings)["CompletionOrchestrator"] == logging.INFO


def test_setup_logging_applies_levels_to_named_loggers():
    settings = Settings(_env_file=None, log_level_http="ERROR")

    setup_logging(settings)

    assert logging.getLogger("httpcore").level == logging.ERROR
