"""
Phase definitions.

Describes, for each job kind, how it is started and how its status is
queried, reducing the different endpoint payloads to one JobUpdate shape
that the job store understands.

Dependencies: contract_workflow.boundary.http.contract_api
System role: Per-kind remote job adapters
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from contract_workflow.boundary.http.contract_api import ContractApi
from contract_workflow.core.exceptions import RemoteError
from contract_workflow.core.job_store import map_remote_status
from contract_workflow.models.contract import ExtractionStatus
from contract_workflow.models.job import JobKind, JobStatus


@dataclass(frozen=True)
class JobUpdate:
    """Status reported by the service for one job, plus its payload."""

    status: str
    payload: dict[str, Any] | None = None
    error: str | None = None

    @property
    def local_status(self) -> JobStatus:
        return map_remote_status(self.status)

    @property
    def terminal(self) -> bool:
        return self.local_status.is_terminal


StartFn = Callable[[ContractApi, str], Awaitable[JobUpdate]]
PollFn = Callable[[ContractApi, str], Awaitable[JobUpdate]]


@dataclass(frozen=True)
class PhaseDefinition:
    """
    How one job kind is driven.

    Attributes:
        kind: Job kind
        start: Issues the start request
        poll: Issues one status query; None for request/response phases
    """

    kind: JobKind
    start: StartFn
    poll: PollFn | None = None


def should_abort_polling(error: BaseException) -> bool:
    """
    Stop polling early on unambiguous client errors.

    A 404 means the job does not exist and 401/403 will not heal by
    retrying; timeouts and rate limits stay retryable.
    """
    if not isinstance(error, RemoteError):
        return False
    return 400 <= error.status_code < 500 and error.status_code not in (408, 429)


def text_extraction_update(extraction: ExtractionStatus) -> JobUpdate:
    """Text extraction is complete once raw text is present."""
    if extraction.has_text:
        return JobUpdate(
            status="completed",
            payload=extraction.model_dump(
                by_alias=True,
                include={
                    "extraction_id",
                    "raw_text",
                    "page_count",
                    "quality_flag",
                    "extracted_at",
                },
                exclude_none=True,
                mode="json",
            ),
        )
    status = map_remote_status(extraction.status)
    if status == JobStatus.FAILED:
        return JobUpdate(status="failed", error=extraction.error)
    if status == JobStatus.COMPLETED:
        return JobUpdate(status="failed", error="Text extraction produced no text")
    return JobUpdate(status=status.value)


def ai_extraction_update(extraction: ExtractionStatus) -> JobUpdate:
    status = map_remote_status(extraction.status)
    if status == JobStatus.COMPLETED:
        return JobUpdate(status="completed", payload=extraction.to_payload())
    if status == JobStatus.FAILED:
        return JobUpdate(status="failed", error=extraction.error)
    return JobUpdate(status=status.value)


def _acknowledged(status: str) -> JobUpdate:
    # Completed-without-data still needs one status query to fetch the data
    local = map_remote_status(status)
    if local == JobStatus.COMPLETED:
        return JobUpdate(status="processing")
    return JobUpdate(status=local.value)


async def _start_text_extraction(api: ContractApi, contract_id: str) -> JobUpdate:
    ack = await api.start_text_extraction(contract_id)
    return _acknowledged(ack.status)


async def _poll_text_extraction(api: ContractApi, contract_id: str) -> JobUpdate:
    return text_extraction_update(await api.get_extraction(contract_id))


async def _start_ai_extraction(api: ContractApi, contract_id: str) -> JobUpdate:
    ack = await api.start_ai_analysis(contract_id)
    return _acknowledged(ack.status)


async def _poll_ai_extraction(api: ContractApi, contract_id: str) -> JobUpdate:
    return ai_extraction_update(await api.get_extraction(contract_id))


async def _run_risk_analysis(api: ContractApi, contract_id: str) -> JobUpdate:
    analysis = await api.run_risk_analysis(contract_id)
    return JobUpdate(status="completed", payload=analysis.to_payload())


async def _start_compliance_check(api: ContractApi, contract_id: str) -> JobUpdate:
    result = await api.run_compliance_check(contract_id)
    if result is None:
        return JobUpdate(status="pending")
    return JobUpdate(status="completed", payload=result.to_payload())


async def _poll_compliance_check(api: ContractApi, contract_id: str) -> JobUpdate:
    # No result yet is a 404, which the API maps to None
    result = await api.get_compliance_result(contract_id, retry=False)
    if result is None:
        return JobUpdate(status="pending")
    return JobUpdate(status="completed", payload=result.to_payload())


DEFAULT_PHASES: dict[JobKind, PhaseDefinition] = {
    JobKind.TEXT_EXTRACTION: PhaseDefinition(
        JobKind.TEXT_EXTRACTION, _start_text_extraction, _poll_text_extraction
    ),
    JobKind.AI_EXTRACTION: PhaseDefinition(
        JobKind.AI_EXTRACTION, _start_ai_extraction, _poll_ai_extraction
    ),
    JobKind.RISK_ANALYSIS: PhaseDefinition(JobKind.RISK_ANALYSIS, _run_risk_analysis),
    JobKind.COMPLIANCE_CHECK: PhaseDefinition(
        JobKind.COMPLIANCE_CHECK, _start_compliance_check, _poll_compliance_check
    ),
}
