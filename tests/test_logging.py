import logging

import pytest

from app.core.config import Settings
from app.core.logging import configure_logging, logger_levels, parse_pairs


def test_parse_pairs_skips_entries_without_key():
    assert parse_pairs("Authorization=Bearer abc, x-team = support,broken,=orphan,") == {
        "Authorization": "Bearer abc",
        "x-team": "support",
    }
    assert parse_pairs(None) == {}


def test_driver_loggers_stay_quiet_unless_debugging():
    assert logger_levels(Settings(log_level="INFO"))["sqlalchemy.engine"] == logging.WARNING
    assert logger_levels(Settings(log_level="ERROR"))["aiosqlite"] == logging.ERROR
    assert logger_levels(Settings(log_level="DEBUG"))["sqlalchemy.engine"] == logging.DEBUG


def test_log_level_overrides_apply_per_logger():
    settings = Settings(log_level="INFO", log_levels="app.notifications=DEBUG,sqlalchemy.engine=info,app.x=bogus")

    levels = logger_levels(settings)

    assert levels["app.notifications"] == logging.DEBUG
    assert levels["sqlalchemy.engine"] == logging.INFO
    assert levels["app.x"] == logging.INFO


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    notifications_level = logging.getLogger("app.notifications").level
    try:
        yield
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger("app.notifications").setLevel(notifications_level)
        for name in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
            logging.getLogger(name).setLevel(logging.NOTSET)


def test_configure_logging_installs_levels(restore_logging):
    settings = Settings(app_name="support-test", log_level="WARNING", log_levels="app.notifications=DEBUG")

    logger = configure_logging(settings)

    assert logger.name == "support-test"
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("app.notifications").level == logging.DEBUG
