"""HTTP adapters for the contract service."""

from contract_workflow.boundary.http.api_gateway_client import ApiGatewayClient
from contract_workflow.boundary.http.contract_api import ContractApi

__all__ = ["ApiGatewayClient", "ContractApi"]
