"""
Job domain models.

Snapshot of one asynchronous remote operation tied to a contract.

Dependencies: pydantic
System role: Job state contracts shared by store, poller and controller
"""

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobKind(str, enum.Enum):
    """
    Remote operations tracked per contract.

    TEXT_EXTRACTION: Pull raw text out of the uploaded document
    AI_EXTRACTION: Structured party/date/amount/clause extraction
    RISK_ANALYSIS: Risk scoring over the extracted data
    COMPLIANCE_CHECK: Playbook rule evaluation
    """

    TEXT_EXTRACTION = "text_extraction"
    AI_EXTRACTION = "ai_extraction"
    RISK_ANALYSIS = "risk_analysis"
    COMPLIANCE_CHECK = "compliance_check"


class JobStatus(str, enum.Enum):
    """
    Local job states.

    IDLE: Never started
    PENDING: Start requested, no progress reported yet
    PROCESSING: Service reports work in progress
    COMPLETED: Finished; result holds the payload
    FAILED: Finished unsuccessfully; error_message holds the reason
    """

    IDLE = "idle"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self in (JobStatus.PENDING, JobStatus.PROCESSING)


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class Job(BaseModel):
    """
    Immutable job snapshot.

    Attributes:
        subject_id: Contract the job operates on
        kind: Job kind
        status: Current local status
        result: Service payload, only when completed
        error_message: Failure reason, only when failed
        attempts: Non-terminal status results applied since start
        generation: Nonce bumped by every start; older responses are stale
        started_at: When the job was started (UTC)
        last_polled_at: When the last status result was applied (UTC)
    """

    model_config = ConfigDict(frozen=True)

    subject_id: str
    kind: JobKind
    status: JobStatus = JobStatus.IDLE
    result: dict[str, Any] | None = None
    error_message: str | None = None
    attempts: int = Field(default=0, ge=0)
    generation: int = Field(default=0, ge=0)
    started_at: datetime | None = None
    last_polled_at: datetime | None = None
