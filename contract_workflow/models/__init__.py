"""Domain models and API schemas."""

from contract_workflow.models.job import Job, JobKind, JobStatus, TERMINAL_STATUSES
from contract_workflow.models.workflow import (
    FailureReason,
    PhaseFailure,
    PhaseStatus,
    PhaseView,
    WorkflowPhase,
    WorkflowState,
)

__all__ = [
    "FailureReason",
    "Job",
    "JobKind",
    "JobStatus",
    "PhaseFailure",
    "PhaseStatus",
    "PhaseView",
    "TERMINAL_STATUSES",
    "WorkflowPhase",
    "WorkflowState",
]
