"""
Tests for the logging setup.
"""

import logging

import pytest

from services.logger import (
    LOG_LEVEL_ENV,
    ROOT_LOGGER_NAME,
    VERBOSE,
    configure_logging,
    get_logger,
)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def teardown_method(self):
        configure_logging("NORMAL")

    @pytest.mark.parametrize("name,level", [
        ("QUIET", logging.WARNING),
        ("normal", logging.INFO),
        ("Verbose", VERBOSE),
        ("DEBUG", logging.DEBUG),
    ])
    def test_levels(self, name, level):
        configure_logging(name)

        assert logging.getLogger(ROOT_LOGGER_NAME).level == level

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "DEBUG")

        configure_logging()

        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            configure_logging("LOUD")

    def test_reconfigure_replaces_handler(self):
        configure_logging("NORMAL")
        configure_logging("DEBUG")

        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1

    def test_verbose_level_name(self):
        assert logging.getLevelName(VERBOSE) == "VERBOSE"


class TestGetLogger:
    """Tests for get_logger."""

    def test_hierarchy(self):
        root = logging.getLogger(ROOT_LOGGER_NAME)
        log = get_logger("engine.match_maker")

        assert log.name == "matchday.engine.match_maker"
        assert log.parent is root
