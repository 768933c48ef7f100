"""
Shared test fixtures and configuration for entire test suite.

Provides: job store, fast polling settings, mocked contract API, gateway
clients backed by httpx.MockTransport
Dependencies: pytest, httpx
System role: Test infrastructure and fixture management
"""

from typing import Any, Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from contract_workflow.boundary.http import ApiGatewayClient, ContractApi
from contract_workflow.configs.polling import PollingSettings
from contract_workflow.core.job_store import JobStateStore
from contract_workflow.models.contract import ContractSummary
from contract_workflow.observability.correlation import clear_correlation_id

BASE_URL = "http://contracts.test/api"


def _sequence(*values: Any) -> Callable[..., Any]:
    """
    Side effect returning ``values`` in order, then repeating the last one.

    Exceptions in ``values`` are raised instead of returned.
    """
    remaining = list(values)

    def _next(*args: Any, **kwargs: Any) -> Any:
        value = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(value, BaseException):
            raise value
        return value

    return _next


def _envelope(data: Any = None, status_code: int = 200, **extra: Any) -> httpx.Response:
    """Build a success envelope response."""
    return httpx.Response(status_code, json={"success": True, "data": data, **extra})


@pytest.fixture(autouse=True)
def reset_correlation_id():
    """Keep correlation IDs from leaking between tests."""
    yield
    clear_correlation_id()


@pytest.fixture
def store() -> JobStateStore:
    """Provide an empty job state store."""
    return JobStateStore()


@pytest.fixture
def fast_polling() -> PollingSettings:
    """Polling settings small enough for tests (10ms, 5 attempts)."""
    return PollingSettings(interval_ms=10, max_attempts=5, immediate=True)


@pytest.fixture
def mock_api() -> AsyncMock:
    """Provide mock contract API whose contract has no risk score yet."""
    api = AsyncMock(spec=ContractApi)
    api.get_contract.return_value = ContractSummary(id="contract-1", title="MSA")
    return api


@pytest.fixture
def make_gateway():
    """
    Factory for gateway clients whose requests go to ``handler``.

    Yields:
        Callable: handler -> ApiGatewayClient
    """

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> ApiGatewayClient:
        return ApiGatewayClient(
            base_url=BASE_URL,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    yield _make


@pytest.fixture
def sequence() -> Callable[..., Callable[..., Any]]:
    """Provide the ordered side-effect builder."""
    return _sequence


@pytest.fixture
def envelope() -> Callable[..., httpx.Response]:
    """Provide the success-envelope response builder."""
    return _envelope
