"""
Typed contract service endpoints.

Wraps the gateway client with one method per REST endpoint used by the
workflow and validates responses into pydantic models. One-shot reads are
retried on network failures; status queries used for polling are not, since
the poller owns that budget.

Dependencies: tenacity, contract_workflow.boundary.http.api_gateway_client
System role: Remote API contract (boundary layer)
"""

import logging
import mimetypes
from pathlib import Path

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from contract_workflow.boundary.http.api_gateway_client import ApiGatewayClient
from contract_workflow.core.exceptions import NetworkError, RemoteError
from contract_workflow.models.contract import (
    ComplianceResult,
    ContractSummary,
    ExtractionStart,
    ExtractionStatus,
    RiskAnalysis,
)

logger = logging.getLogger(__name__)


class ContractApi:
    """Endpoint wrappers for contracts, extraction, AI and playbook routes."""

    def __init__(self, client: ApiGatewayClient, read_retry_attempts: int = 3) -> None:
        """
        Initialize contract API.

        Args:
            client: Gateway client used for every call
            read_retry_attempts: Attempts for one-shot reads on NetworkError
        """
        self.client = client
        self.read_retry_attempts = read_retry_attempts

    def _read_retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(NetworkError),
            stop=stop_after_attempt(self.read_retry_attempts),
            wait=wait_exponential_jitter(initial=0.5, max=5),
            reraise=True,
        )

    async def upload_contract(
        self,
        file_path: str | Path,
        title: str,
        vendor: str | None = None,
        description: str | None = None,
    ) -> ContractSummary:
        """
        Upload a contract document.

        Args:
            file_path: Local path of the document
            title: Contract title
            vendor: Counterparty name
            description: Free-text description

        Returns:
            ContractSummary: Created contract
        """
        path = Path(file_path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        form = {"title": title}
        if vendor:
            form["vendor"] = vendor
        if description:
            form["description"] = description

        with path.open("rb") as fh:
            data = await self.client.post(
                "/contracts/upload",
                files={"file": (path.name, fh, content_type)},
                data=form,
            )
        logger.info(f"{__name__}:upload_contract - Uploaded {path.name}")
        return ContractSummary.model_validate(data["contract"])

    async def get_contract(self, contract_id: str) -> ContractSummary:
        async for attempt in self._read_retrying():
            with attempt:
                data = await self.client.get(f"/contracts/{contract_id}")
        return ContractSummary.model_validate(data["contract"])

    async def start_text_extraction(self, contract_id: str) -> ExtractionStart:
        data = await self.client.post(f"/extraction/contracts/{contract_id}/extract")
        return ExtractionStart.model_validate(data or {})

    async def get_extraction(self, contract_id: str) -> ExtractionStatus:
        """Current extraction status; also carries AI analysis results."""
        data = await self.client.get(f"/extraction/contracts/{contract_id}/extraction")
        return ExtractionStatus.model_validate(data)

    async def start_ai_analysis(self, contract_id: str) -> ExtractionStart:
        """
        Start AI analysis on the extracted text.

        The service answers 202 with status "processing", or 200 with the
        existing data when the analysis already ran.
        """
        data = await self.client.post(f"/extraction/contracts/{contract_id}/ai-analysis")
        data = data or {}
        if "extractedData" in data:
            return ExtractionStart(
                extraction_id=str(data["extractedData"].get("_id") or "") or None,
                status="completed",
            )
        return ExtractionStart.model_validate(data)

    async def run_risk_analysis(self, contract_id: str) -> RiskAnalysis:
        data = await self.client.post(f"/ai/contracts/{contract_id}/risks")
        return RiskAnalysis.model_validate(data["riskAnalysis"])

    async def run_compliance_check(self, contract_id: str) -> ComplianceResult | None:
        """
        Run the playbook check.

        Returns:
            ComplianceResult | None: Result, or None when the service only
                acknowledged the request
        """
        data = await self.client.post(f"/playbook/contracts/{contract_id}/check")
        result = (data or {}).get("complianceResult")
        return ComplianceResult.model_validate(result) if result else None

    async def get_compliance_result(
        self, contract_id: str, retry: bool = True
    ) -> ComplianceResult | None:
        """
        Latest compliance result.

        Args:
            contract_id: Contract ID
            retry: Retry network failures (disabled for status polling)

        Returns:
            ComplianceResult | None: None when no check has run yet (404)
        """
        path = f"/playbook/contracts/{contract_id}/result"
        try:
            if retry:
                async for attempt in self._read_retrying():
                    with attempt:
                        data = await self.client.get(path)
            else:
                data = await self.client.get(path)
        except RemoteError as e:
            if e.is_not_found:
                return None
            raise
        return ComplianceResult.model_validate(data["complianceResult"])
