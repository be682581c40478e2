"""Tests for the opt-in structlog setup."""

import logging

import pytest
import structlog

from py_civmap.config.config import Settings
from py_civmap.logging_config import configure_logging


@pytest.fixture(autouse=True)
def restore_structlog():
    yield
    structlog.reset_defaults()
    logging.getLogger().setLevel(logging.WARNING)


class TestConfigureLogging:
    """Test processor chain installation."""

    def test_level_from_settings(self):
        configure_logging(Settings(log_level="DEBUG", log_format="plain"))
        assert logging.getLogger().level == logging.DEBUG
        assert structlog.is_configured()

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(Settings(log_level="chatty", log_format="json"))
        assert logging.getLogger().level == logging.INFO

    def test_json_output(self, capsys):
        configure_logging(Settings(log_level="INFO", log_format="json"))
        structlog.get_logger("py_civmap.test").info("Map ready", tiles=960)
        out = capsys.readouterr().out
        assert '"event": "Map ready"' in out
        assert '"tiles": 960' in out
