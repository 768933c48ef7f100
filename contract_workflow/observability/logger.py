"""
Logger configuration.

Stdout logging with ISO timestamps; every record carries the correlation ID
of the request (or polling task) that produced it.

Dependencies: logging (stdlib), contract_workflow.observability.correlation
System role: Centralized logging configuration
"""

import logging
import sys

from contract_workflow.observability.correlation import get_correlation_id

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation ID to each record ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    """
    Route root logging to stdout with correlation IDs.

    Safe to call more than once; previous root handlers are replaced.

    Args:
        level: Root logger level name (DEBUG, INFO, ...)
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))

    root_logger.setLevel(level.upper())
    root_logger.addHandler(handler)

    # Per-request lines from the HTTP client are too chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
