"""
Contract workflow API endpoints.

Routes:
- POST /contracts/{id}/workflow - Open workflow (hydrate, optionally run)
- GET /contracts/{id}/workflow - Current workflow state
- POST /contracts/{id}/workflow/phases/{kind}/start - Start a phase
- POST /contracts/{id}/workflow/phases/{kind}/retry - Retry a failed phase
- POST /contracts/{id}/workflow/phases/{kind}/check-again - Resume polling after a timeout
- DELETE /contracts/{id}/workflow - Close workflow and stop polling

Dependencies: contract_workflow.application.services, contract_workflow.models
System role: Workflow status HTTP API
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from contract_workflow.api.deps.dependencies import get_workflow_service
from contract_workflow.application.services.workflow_service import WorkflowService
from contract_workflow.models.job import JobKind
from contract_workflow.models.workflow import WorkflowState

from .workflow_error_handling import handle_workflow_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["workflows"])


@router.post("/{contract_id}/workflow", response_model=WorkflowState)
@handle_workflow_errors
async def open_workflow(
    contract_id: str,
    auto_run: bool = Query(default=True, description="Start the next incomplete phase"),
    workflow_service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowState:
    """
    Open a contract's workflow.

    Hydrates state from the contract service; with ``auto_run`` the next
    incomplete phase is started and later phases follow automatically.
    """
    return await workflow_service.open_contract(contract_id, auto_run=auto_run)


@router.get("/{contract_id}/workflow", response_model=WorkflowState)
@handle_workflow_errors
async def get_workflow(
    contract_id: str,
    workflow_service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowState:
    """
    Get workflow state for polling by the presentation layer.

    Raises:
        HTTPException(404): Workflow not open
    """
    return workflow_service.get_state(contract_id)


@router.post("/{contract_id}/workflow/phases/{kind}/start", response_model=WorkflowState)
@handle_workflow_errors
async def start_phase(
    contract_id: str,
    kind: JobKind,
    workflow_service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowState:
    """
    Start one phase. A phase already running is left alone.

    Raises:
        HTTPException(409): Prerequisite phase not completed
    """
    return await workflow_service.start_phase(contract_id, kind)


@router.post("/{contract_id}/workflow/phases/{kind}/retry", response_model=WorkflowState)
@handle_workflow_errors
async def retry_phase(
    contract_id: str,
    kind: JobKind,
    workflow_service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowState:
    """Retry a failed phase with a fresh start request."""
    return await workflow_service.retry_phase(contract_id, kind)


@router.post(
    "/{contract_id}/workflow/phases/{kind}/check-again", response_model=WorkflowState
)
@handle_workflow_errors
async def check_again(
    contract_id: str,
    kind: JobKind,
    workflow_service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowState:
    """Resume polling a phase that timed out."""
    return await workflow_service.check_again(contract_id, kind)


@router.delete("/{contract_id}/workflow", status_code=status.HTTP_204_NO_CONTENT)
@handle_workflow_errors
async def close_workflow(
    contract_id: str,
    workflow_service: WorkflowService = Depends(get_workflow_service),
) -> Response:
    """Close a workflow; all polling for the contract stops."""
    await workflow_service.close_contract(contract_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
