"""
Job state store.

Holds the current Job per (contract, kind) and exposes the transitions
applied by the workflow controller. Every start bumps a generation counter;
status results carry the generation they were issued under and are dropped
when it is no longer current.

Dependencies: contract_workflow.models.job, contract_workflow.core.exceptions
System role: Authoritative client-side job state
"""

import logging
from datetime import datetime, timezone
from typing import Any

from contract_workflow.core.exceptions import ValidationError
from contract_workflow.models.job import Job, JobKind, JobStatus

logger = logging.getLogger(__name__)

JobKey = tuple[str, JobKind]

# Remote status vocabulary -> local status
REMOTE_STATUS_MAP: dict[str, JobStatus] = {
    "pending": JobStatus.PENDING,
    "queued": JobStatus.PENDING,
    "processing": JobStatus.PROCESSING,
    "running": JobStatus.PROCESSING,
    "in_progress": JobStatus.PROCESSING,
    "completed": JobStatus.COMPLETED,
    "done": JobStatus.COMPLETED,
    "succeeded": JobStatus.COMPLETED,
    "success": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
}

DEFAULT_FAILURE_MESSAGE = "Job failed"


def map_remote_status(remote_status: str | JobStatus) -> JobStatus:
    """
    Map a status reported by the service to the local enum.

    Args:
        remote_status: Status string from the service (case-insensitive)

    Returns:
        JobStatus: Local status

    Raises:
        ValidationError: Unknown or idle status
    """
    if isinstance(remote_status, JobStatus):
        status = remote_status
    else:
        status = REMOTE_STATUS_MAP.get(str(remote_status).strip().lower())
    if status is None or status == JobStatus.IDLE:
        raise ValidationError(
            f"Unrecognized job status: {remote_status!r}", field="status"
        )
    return status


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStateStore:
    """
    In-memory job state keyed by (subject_id, kind).

    Snapshots are immutable; each transition replaces the stored Job.
    Generation counters outlive ``clear`` so a response issued before a
    clear stays stale after the job is started again.
    """

    def __init__(self) -> None:
        self._jobs: dict[JobKey, Job] = {}
        self._generations: dict[JobKey, int] = {}

    def start_job(self, subject_id: str, kind: JobKind) -> Job:
        """
        Start (or restart) a job.

        Resets result, error and attempts and bumps the generation, which
        supersedes any status query still in flight for the previous one.

        Args:
            subject_id: Contract ID
            kind: Job kind

        Returns:
            Job: Fresh pending snapshot
        """
        key = (subject_id, kind)
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation

        job = Job(
            subject_id=subject_id,
            kind=kind,
            status=JobStatus.PENDING,
            generation=generation,
            started_at=_utcnow(),
        )
        self._jobs[key] = job
        logger.debug(
            f"{__name__}:start_job - {kind.value} for {subject_id} "
            f"(generation {generation})"
        )
        return job

    def apply_poll_result(
        self,
        subject_id: str,
        kind: JobKind,
        remote_status: str | JobStatus,
        payload: dict[str, Any] | None = None,
        error: str | None = None,
        *,
        generation: int,
    ) -> Job | None:
        """
        Apply one status result to the job it was issued for.

        Args:
            subject_id: Contract ID
            kind: Job kind
            remote_status: Status reported by the service
            payload: Result payload (stored when completed)
            error: Error message (stored when failed)
            generation: Generation the status query was issued under

        Returns:
            Job | None: New snapshot, or None when the result was discarded
                (stale generation, cleared job, or job already terminal)

        Raises:
            ValidationError: Unknown remote status
        """
        key = (subject_id, kind)
        current = self._jobs.get(key)
        if current is None:
            logger.debug(
                f"{__name__}:apply_poll_result - Dropping result for cleared "
                f"{kind.value} of {subject_id}"
            )
            return None
        if generation != current.generation:
            logger.debug(
                f"{__name__}:apply_poll_result - Dropping stale generation "
                f"{generation} (current {current.generation}) for {kind.value} of {subject_id}"
            )
            return None
        if current.status.is_terminal:
            logger.debug(
                f"{__name__}:apply_poll_result - {kind.value} of {subject_id} already "
                f"{current.status.value}, ignoring"
            )
            return None

        status = map_remote_status(remote_status)
        now = _utcnow()

        if status == JobStatus.COMPLETED:
            updated = current.model_copy(
                update={
                    "status": status,
                    "result": dict(payload or {}),
                    "error_message": None,
                    "last_polled_at": now,
                }
            )
        elif status == JobStatus.FAILED:
            updated = current.model_copy(
                update={
                    "status": status,
                    "result": None,
                    "error_message": error or DEFAULT_FAILURE_MESSAGE,
                    "last_polled_at": now,
                }
            )
        else:
            updated = current.model_copy(
                update={
                    "status": status,
                    "attempts": current.attempts + 1,
                    "last_polled_at": now,
                }
            )

        self._jobs[key] = updated
        return updated

    def clear(self, subject_id: str, kind: JobKind | None = None) -> None:
        """
        Remove job state for a contract.

        Args:
            subject_id: Contract ID
            kind: Only this kind; all kinds when None
        """
        if kind is not None:
            self._jobs.pop((subject_id, kind), None)
            return
        for key in [k for k in self._jobs if k[0] == subject_id]:
            del self._jobs[key]

    def get(self, subject_id: str, kind: JobKind) -> Job | None:
        return self._jobs.get((subject_id, kind))

    def jobs_for(self, subject_id: str) -> dict[JobKind, Job]:
        """All jobs currently held for a contract, keyed by kind."""
        return {kind: job for (sid, kind), job in self._jobs.items() if sid == subject_id}

    def is_active(self, subject_id: str, kind: JobKind) -> bool:
        job = self._jobs.get((subject_id, kind))
        return job is not None and job.status.is_active

    def current_generation(self, subject_id: str, kind: JobKind) -> int:
        return self._generations.get((subject_id, kind), 0)
