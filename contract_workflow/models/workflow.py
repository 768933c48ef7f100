"""
Workflow domain models and schemas.

Phase state machine vocabulary and the snapshot exposed to the
presentation layer.

Dependencies: pydantic, contract_workflow.models.job
System role: Workflow status API contracts
"""

import enum

from pydantic import BaseModel, Field

from contract_workflow.models.job import Job, JobKind


class WorkflowPhase(str, enum.Enum):
    """
    Workflow state machine.

    NOT_STARTED -> EXTRACTING -> AWAITING_AI_ANALYSIS -> ANALYZING_RISK
    -> AWAITING_COMPLIANCE_CHECK -> READY, with FAILED reachable from any
    phase and absorbing until an explicit retry.
    """

    NOT_STARTED = "not_started"
    EXTRACTING = "extracting"
    AWAITING_AI_ANALYSIS = "awaiting_ai_analysis"
    ANALYZING_RISK = "analyzing_risk"
    AWAITING_COMPLIANCE_CHECK = "awaiting_compliance_check"
    READY = "ready"
    FAILED = "failed"


# Phase order; each kind's prerequisite is the kind before it
PHASE_ORDER: tuple[JobKind, ...] = (
    JobKind.TEXT_EXTRACTION,
    JobKind.AI_EXTRACTION,
    JobKind.RISK_ANALYSIS,
    JobKind.COMPLIANCE_CHECK,
)

KIND_TO_PHASE: dict[JobKind, WorkflowPhase] = {
    JobKind.TEXT_EXTRACTION: WorkflowPhase.EXTRACTING,
    JobKind.AI_EXTRACTION: WorkflowPhase.AWAITING_AI_ANALYSIS,
    JobKind.RISK_ANALYSIS: WorkflowPhase.ANALYZING_RISK,
    JobKind.COMPLIANCE_CHECK: WorkflowPhase.AWAITING_COMPLIANCE_CHECK,
}


def prerequisite_of(kind: JobKind) -> JobKind | None:
    """Return the kind that must complete before ``kind`` may start."""
    index = PHASE_ORDER.index(kind)
    return PHASE_ORDER[index - 1] if index > 0 else None


def next_kind(kind: JobKind) -> JobKind | None:
    """Return the kind that follows ``kind``, or None for the last phase."""
    index = PHASE_ORDER.index(kind)
    return PHASE_ORDER[index + 1] if index + 1 < len(PHASE_ORDER) else None


class PhaseStatus(str, enum.Enum):
    """Per-kind status as shown to the operator."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class FailureReason(str, enum.Enum):
    """Why a phase ended in FAILED."""

    JOB_FAILED = "job_failed"
    TIMED_OUT = "timed_out"
    REMOTE_ERROR = "remote_error"
    NETWORK_ERROR = "network_error"
    INVALID_RESPONSE = "invalid_response"
    INTERNAL_ERROR = "internal_error"


class PhaseFailure(BaseModel):
    """Failure retained for display until the phase is retried."""

    kind: JobKind
    reason: FailureReason
    message: str
    status_code: int | None = None

    @property
    def can_check_again(self) -> bool:
        """A timeout is not a verdict; the job may still finish remotely."""
        return self.reason == FailureReason.TIMED_OUT


class PhaseView(BaseModel):
    """Status and latest job snapshot for one kind."""

    kind: JobKind
    status: PhaseStatus = PhaseStatus.NOT_STARTED
    job: Job | None = None


class WorkflowState(BaseModel):
    """Snapshot of one contract's workflow."""

    subject_id: str
    phase: WorkflowPhase = WorkflowPhase.NOT_STARTED
    failure: PhaseFailure | None = None
    phases: dict[JobKind, PhaseView] = Field(default_factory=dict)
    closed: bool = False
