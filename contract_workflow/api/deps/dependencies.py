"""
Dependency injection container.

Factory functions for FastAPI dependencies.

Dependencies: contract_workflow.configs, contract_workflow.application, contract_workflow.boundary
System role: DI container for service injection
"""

from contract_workflow.application.services import WorkflowService
from contract_workflow.boundary.http import ApiGatewayClient, ContractApi
from contract_workflow.configs import get_settings
from contract_workflow.core.job_store import JobStateStore


class ServiceCache:
    """Container for cached service instances."""

    def __init__(self):
        self._gateway_client = None
        self._contract_api = None
        self._workflow_service = None

    @property
    def gateway_client(self) -> ApiGatewayClient:
        """Get cached gateway client."""
        if self._gateway_client is None:
            settings = get_settings()
            self._gateway_client = ApiGatewayClient(
                base_url=settings.api.base_url,
                token=settings.api.token,
                timeout_seconds=settings.api.timeout_seconds,
                correlation_header=settings.observability.correlation_header,
            )
        return self._gateway_client

    @property
    def contract_api(self) -> ContractApi:
        """Get cached contract API."""
        if self._contract_api is None:
            settings = get_settings()
            self._contract_api = ContractApi(
                self.gateway_client,
                read_retry_attempts=settings.api.read_retry_attempts,
            )
        return self._contract_api

    @property
    def workflow_service(self) -> WorkflowService:
        """Get cached workflow service with its own job state store."""
        if self._workflow_service is None:
            self._workflow_service = WorkflowService(
                api=self.contract_api,
                store=JobStateStore(),
                polling=get_settings().polling,
            )
        return self._workflow_service

    async def aclose(self) -> None:
        """Close open workflows and the HTTP client, then drop all instances."""
        if self._workflow_service is not None:
            await self._workflow_service.shutdown()
        if self._gateway_client is not None:
            await self._gateway_client.aclose()
        self._gateway_client = None
        self._contract_api = None
        self._workflow_service = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


def get_workflow_service() -> WorkflowService:
    """
    Get workflow service instance.

    Returns:
        WorkflowService: Shared workflow service
    """
    return get_service_cache().workflow_service
