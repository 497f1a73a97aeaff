"""Tests for logging setup."""

import logging
import pytest
from infraplan.utils.logging import get_logger, set_log_level, setup_logging


@pytest.fixture(autouse=True)
def restore_level():
    root = logging.getLogger("infraplan")
    level = root.level
    yield
    root.setLevel(level)


class TestSetupLogging:

    def test_level_by_name(self):
        assert setup_logging("debug").level == logging.DEBUG

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("INFRAPLAN_LOG_LEVEL", "ERROR")
        assert setup_logging().level == logging.ERROR

    def test_unknown_environment_level_falls_back(self, monkeypatch):
        monkeypatch.setenv("INFRAPLAN_LOG_LEVEL", "chatty")
        assert setup_logging().level == logging.WARNING

    def test_set_log_level(self):
        set_log_level(logging.INFO)
        assert logging.getLogger("infraplan").level == logging.INFO
        with pytest.raises(ValueError):
            set_log_level("chatty")

    def test_module_loggers_share_the_tree(self):
        assert get_logger("graph.builder").name == "infraplan.graph.builder"
