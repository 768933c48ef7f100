"""Logging and request correlation."""

from contract_workflow.observability.correlation import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from contract_workflow.observability.logger import configure_logging

__all__ = [
    "clear_correlation_id",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
