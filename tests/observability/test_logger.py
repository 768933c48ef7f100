"""
Test suite for logging configuration.

System role: Verification of log formatting and correlation injection
"""

import logging

import pytest

from contract_workflow.observability.correlation import set_correlation_id
from contract_workflow.observability.logger import CorrelationIdFilter, configure_logging


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "polling", None, None)


class TestCorrelationIdFilter:
    def test_adds_current_correlation_id(self) -> None:
        set_correlation_id("req-7")
        record = _record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "req-7"

    def test_placeholder_when_unset(self) -> None:
        record = _record()

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == "-"


class TestConfigureLogging:
    def test_replaces_handlers_and_sets_level(self, restore_root_logger) -> None:
        configure_logging("debug")
        configure_logging("warning")

        root = restore_root_logger
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_output_includes_correlation_id(self, restore_root_logger, capsys) -> None:
        configure_logging("INFO")
        set_correlation_id("req-9")

        logging.getLogger("contract_workflow.test").info("phase started")

        assert "[req-9] phase started" in capsys.readouterr().out
