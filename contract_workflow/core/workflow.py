"""
Workflow controller.

Sequences text extraction -> AI analysis -> risk analysis -> compliance
check for one contract. Each phase starts only after its prerequisite
completed; a failure halts auto-progression until the operator retries.
The controller is the only writer to the job store for its contract and
tags every write with the generation the request was issued under.

Dependencies: asyncio, contract_workflow.core (job_store, poller, phases)
System role: Per-contract orchestration of long-running remote jobs
"""

import asyncio
import logging
from typing import Coroutine

from pydantic import ValidationError as PydanticValidationError

from contract_workflow.boundary.http.contract_api import ContractApi
from contract_workflow.configs.polling import PollingSettings
from contract_workflow.core.exceptions import (
    ContractWorkflowException,
    JobFailed,
    NetworkError,
    PhaseNotReadyError,
    PollingTimedOut,
    RemoteError,
    ValidationError,
)
from contract_workflow.core.job_store import JobStateStore
from contract_workflow.core.phases import (
    DEFAULT_PHASES,
    JobUpdate,
    PhaseDefinition,
    ai_extraction_update,
    should_abort_polling,
    text_extraction_update,
)
from contract_workflow.core.poller import Poller, PollerConfig, PollOutcomeKind
from contract_workflow.models.job import Job, JobKind, JobStatus
from contract_workflow.models.workflow import (
    KIND_TO_PHASE,
    PHASE_ORDER,
    FailureReason,
    PhaseFailure,
    PhaseStatus,
    PhaseView,
    WorkflowPhase,
    WorkflowState,
    next_kind,
    prerequisite_of,
)

logger = logging.getLogger(__name__)


def _failure_reason(error: BaseException) -> FailureReason:
    if isinstance(error, JobFailed):
        return FailureReason.JOB_FAILED
    if isinstance(error, PollingTimedOut):
        return FailureReason.TIMED_OUT
    if isinstance(error, RemoteError):
        return FailureReason.REMOTE_ERROR
    if isinstance(error, NetworkError):
        return FailureReason.NETWORK_ERROR
    if isinstance(error, (ValidationError, PydanticValidationError, KeyError, TypeError)):
        return FailureReason.INVALID_RESPONSE
    return FailureReason.INTERNAL_ERROR


def _error_message(error: BaseException) -> str:
    if isinstance(error, ContractWorkflowException):
        return error.message
    if isinstance(error, (PydanticValidationError, KeyError, TypeError)):
        return "Unexpected response from contract service"
    return str(error) or error.__class__.__name__


class WorkflowController:
    """
    Orchestrates the analysis phases of one contract.

    Args:
        subject_id: Contract ID
        store: Shared job state store (injected)
        api: Contract service endpoints
        polling: Interval and attempt ceiling for status polling
        auto_advance: Start the next phase when one completes
        phases: Per-kind definitions (defaults to the service endpoints)
    """

    def __init__(
        self,
        subject_id: str,
        store: JobStateStore,
        api: ContractApi,
        polling: PollingSettings | None = None,
        auto_advance: bool = True,
        phases: dict[JobKind, PhaseDefinition] | None = None,
    ) -> None:
        self.subject_id = subject_id
        self.store = store
        self.api = api
        self.polling = polling or PollingSettings()
        self.auto_advance = auto_advance
        self._phases = phases or DEFAULT_PHASES
        self._pollers: dict[JobKind, Poller] = {}
        self._tasks: dict[JobKind, asyncio.Task] = {}
        self._failures: dict[JobKind, PhaseFailure] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_pollers(self) -> dict[JobKind, Poller]:
        """Pollers that are still running, keyed by kind."""
        return {kind: p for kind, p in self._pollers.items() if p.running}

    def _ensure_open(self) -> None:
        if self._closed:
            raise ValidationError(f"Workflow for {self.subject_id} is closed")

    def _job(self, kind: JobKind) -> Job | None:
        return self.store.get(self.subject_id, kind)

    def _is_completed(self, kind: JobKind) -> bool:
        job = self._job(kind)
        return job is not None and job.status == JobStatus.COMPLETED

    def _is_busy(self, kind: JobKind) -> bool:
        task = self._tasks.get(kind)
        return self.store.is_active(self.subject_id, kind) or (
            task is not None and not task.done()
        )

    # Public operations

    async def start_phase(self, kind: JobKind) -> bool:
        """
        Start one phase.

        Args:
            kind: Job kind to start

        Returns:
            bool: False when the phase was already running (no-op)

        Raises:
            PhaseNotReadyError: Prerequisite phase has not completed
        """
        self._ensure_open()
        if self._is_busy(kind):
            logger.info(
                f"{__name__}:start_phase - {kind.value} already running for "
                f"{self.subject_id}, ignoring"
            )
            return False

        prerequisite = prerequisite_of(kind)
        if prerequisite is not None and not self._is_completed(prerequisite):
            raise PhaseNotReadyError(kind.value, prerequisite.value)

        self._failures.pop(kind, None)
        job = self.store.start_job(self.subject_id, kind)
        logger.info(f"{__name__}:start_phase - Starting {kind.value} for {self.subject_id}")
        self._launch(kind, self._run_phase(kind, job.generation, issue_start=True))
        return True

    async def run(self) -> WorkflowState:
        """
        Start the first phase that has not completed.

        Does nothing while a phase is failed; use retry() for that.

        Returns:
            WorkflowState: Snapshot after scheduling
        """
        self._ensure_open()
        if self._current_failure() is not None:
            logger.info(f"{__name__}:run - {self.subject_id} is failed, waiting for retry")
            return self.snapshot()

        kind = self._first_incomplete()
        if kind is not None:
            await self.start_phase(kind)
        return self.snapshot()

    async def retry(self, kind: JobKind) -> bool:
        """
        Restart a phase from scratch (new start request, new generation).

        Returns:
            bool: False when the phase was already running
        """
        logger.info(f"{__name__}:retry - Retrying {kind.value} for {self.subject_id}")
        return await self.start_phase(kind)

    async def check_again(self, kind: JobKind) -> bool:
        """
        Resume polling a phase that timed out, without starting it again.

        Returns:
            bool: False when the phase was already running

        Raises:
            ValidationError: The phase did not time out
        """
        self._ensure_open()
        if self._is_busy(kind):
            return False
        failure = self._failures.get(kind)
        if failure is None or not failure.can_check_again:
            raise ValidationError(
                f"{kind.value} has not timed out; use retry instead", field="kind"
            )
        if self._phases[kind].poll is None:
            raise ValidationError(f"{kind.value} has no status to check", field="kind")

        self._failures.pop(kind, None)
        job = self.store.start_job(self.subject_id, kind)
        self._launch(kind, self._run_phase(kind, job.generation, issue_start=False))
        return True

    async def hydrate(self) -> WorkflowState:
        """
        Reconcile local state with what the service already holds.

        Missing extraction or compliance results (404) mean "not started";
        a risk score saved on the contract means risk analysis completed;
        jobs the service reports as in progress are polled again.

        Returns:
            WorkflowState: Snapshot after reconciling
        """
        self._ensure_open()

        try:
            extraction = await self.api.get_extraction(self.subject_id)
        except RemoteError as e:
            if not e.is_not_found:
                raise
            extraction = None

        if extraction is not None:
            text_update = text_extraction_update(extraction)
            self._seed(JobKind.TEXT_EXTRACTION, text_update)
            if text_update.local_status == JobStatus.COMPLETED:
                # The status field is shared; "completed" without AI data only
                # means the text is ready
                ai_update = ai_extraction_update(extraction)
                if extraction.has_ai_data or ai_update.local_status in (
                    JobStatus.PROCESSING,
                    JobStatus.FAILED,
                ):
                    self._seed(JobKind.AI_EXTRACTION, ai_update)

        # Risk analysis has no status endpoint; its score lives on the contract
        contract = await self.api.get_contract(self.subject_id)
        if contract.risk_score is not None:
            self._seed(
                JobKind.RISK_ANALYSIS,
                JobUpdate(status="completed", payload={"riskScore": contract.risk_score}),
            )

        compliance = await self.api.get_compliance_result(self.subject_id)
        if compliance is not None:
            self._seed(
                JobKind.COMPLIANCE_CHECK,
                JobUpdate(status="completed", payload=compliance.to_payload()),
            )

        return self.snapshot()

    async def close(self) -> None:
        """Stop all polling, cancel in-flight requests and drop job state."""
        if self._closed:
            return
        self._closed = True

        for poller in self._pollers.values():
            poller.stop()
        current = asyncio.current_task()
        tasks = [t for t in self._tasks.values() if t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self.store.clear(self.subject_id)
        self._pollers.clear()
        self._tasks.clear()
        self._failures.clear()
        logger.info(f"{__name__}:close - Closed workflow for {self.subject_id}")

    async def wait_until_settled(self) -> WorkflowState:
        """Wait until no phase task is running, including auto-started ones."""
        while True:
            current = asyncio.current_task()
            pending = [t for t in self._tasks.values() if not t.done() and t is not current]
            if not pending:
                return self.snapshot()
            await asyncio.gather(*pending, return_exceptions=True)

    def snapshot(self) -> WorkflowState:
        """Current workflow state for display."""
        views: dict[JobKind, PhaseView] = {}
        for kind in PHASE_ORDER:
            job = self._job(kind)
            views[kind] = PhaseView(kind=kind, status=self._phase_status(kind, job), job=job)

        failure = self._current_failure()
        if self._closed:
            phase = WorkflowPhase.NOT_STARTED
        elif failure is not None:
            phase = WorkflowPhase.FAILED
        else:
            kind = self._first_incomplete()
            if kind is None:
                phase = WorkflowPhase.READY
            elif kind == PHASE_ORDER[0] and self._job(kind) is None:
                phase = WorkflowPhase.NOT_STARTED
            else:
                phase = KIND_TO_PHASE[kind]

        return WorkflowState(
            subject_id=self.subject_id,
            phase=phase,
            failure=failure,
            phases=views,
            closed=self._closed,
        )

    # Internals

    def _phase_status(self, kind: JobKind, job: Job | None) -> PhaseStatus:
        if job is None or job.status == JobStatus.IDLE:
            return PhaseStatus.NOT_STARTED
        if job.status.is_active:
            return PhaseStatus.RUNNING
        if job.status == JobStatus.COMPLETED:
            return PhaseStatus.COMPLETED
        failure = self._failures.get(kind)
        if failure is not None and failure.can_check_again:
            return PhaseStatus.TIMED_OUT
        return PhaseStatus.FAILED

    def _first_incomplete(self) -> JobKind | None:
        for kind in PHASE_ORDER:
            if not self._is_completed(kind):
                return kind
        return None

    def _current_failure(self) -> PhaseFailure | None:
        for kind in PHASE_ORDER:
            job = self._job(kind)
            if job is None or job.status != JobStatus.FAILED:
                continue
            return self._failures.get(kind) or PhaseFailure(
                kind=kind,
                reason=FailureReason.JOB_FAILED,
                message=job.error_message or "Job failed",
            )
        return None

    def _launch(self, kind: JobKind, coro: Coroutine) -> None:
        task = asyncio.get_running_loop().create_task(
            coro, name=f"{kind.value}:{self.subject_id}"
        )
        self._tasks[kind] = task

        def _forget(done: asyncio.Task) -> None:
            if self._tasks.get(kind) is done:
                del self._tasks[kind]

        task.add_done_callback(_forget)

    def _apply(self, kind: JobKind, generation: int, update: JobUpdate) -> Job | None:
        if self._closed:
            return None
        return self.store.apply_poll_result(
            self.subject_id,
            kind,
            update.status,
            payload=update.payload,
            error=update.error,
            generation=generation,
        )

    def _seed(self, kind: JobKind, update: JobUpdate) -> None:
        """Record a state found on the server, resuming polling if it is in progress."""
        if self._is_busy(kind):
            return
        local = update.local_status
        job = self.store.start_job(self.subject_id, kind)
        self._apply(kind, job.generation, update)
        if local.is_active and self._phases[kind].poll is not None:
            logger.info(
                f"{__name__}:_seed - {kind.value} in progress for {self.subject_id}, resuming polling"
            )
            self._launch(kind, self._run_phase(kind, job.generation, issue_start=False))
        elif local == JobStatus.FAILED:
            self._failures[kind] = PhaseFailure(
                kind=kind,
                reason=FailureReason.JOB_FAILED,
                message=update.error or "Job failed",
            )

    def _poller_config(self) -> PollerConfig:
        return PollerConfig(
            interval_ms=self.polling.interval_ms,
            max_attempts=self.polling.max_attempts,
            immediate=self.polling.immediate,
            is_terminal=lambda update: update.terminal,
            should_abort=should_abort_polling,
        )

    async def _run_phase(self, kind: JobKind, generation: int, issue_start: bool) -> None:
        definition = self._phases[kind]
        try:
            if issue_start:
                update = await definition.start(self.api, self.subject_id)
                if self._apply(kind, generation, update) is None:
                    return
                if update.terminal:
                    await self._on_terminal(kind, generation)
                    return
                if definition.poll is None:
                    raise ValidationError(
                        f"{kind.value} returned non-terminal status {update.status!r}",
                        field="status",
                    )

            outcome = await self._poll(kind, generation, definition)
            if outcome.kind == PollOutcomeKind.COMPLETED:
                await self._on_terminal(kind, generation)
            elif outcome.kind == PollOutcomeKind.STOPPED:
                return
            else:
                outcome.raise_for_outcome()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not isinstance(e, ContractWorkflowException):
                logger.exception(f"{__name__}:_run_phase - Unexpected error in {kind.value}")
            self._fail(kind, generation, e)

    async def _poll(self, kind: JobKind, generation: int, definition: PhaseDefinition):
        poller = Poller(self._poller_config(), name=f"poll:{kind.value}:{self.subject_id}")
        self._pollers[kind] = poller

        async def query() -> JobUpdate:
            return await definition.poll(self.api, self.subject_id)

        async def on_result(update: JobUpdate) -> None:
            if self._apply(kind, generation, update) is None:
                # Superseded or cleared; nothing left to poll for
                poller.stop()

        poller.start(query, on_result=on_result)
        return await poller.wait()

    async def _on_terminal(self, kind: JobKind, generation: int) -> None:
        job = self._job(kind)
        if job is None or job.generation != generation:
            return
        if job.status == JobStatus.FAILED:
            raise JobFailed(kind.value, job.error_message or "Job failed")

        logger.info(f"{__name__}:_on_terminal - {kind.value} completed for {self.subject_id}")
        if not self.auto_advance or self._closed:
            return

        following = next_kind(kind)
        while following is not None and self._is_completed(following):
            following = next_kind(following)
        if following is not None and self._current_failure() is None:
            await self.start_phase(following)

    def _fail(self, kind: JobKind, generation: int, error: BaseException) -> None:
        reason = _failure_reason(error)
        message = _error_message(error)
        job = self._job(kind)
        if job is None or job.generation != generation or self._closed:
            return
        if job.status != JobStatus.FAILED:
            if self._apply(kind, generation, JobUpdate(status="failed", error=message)) is None:
                return
        self._failures[kind] = PhaseFailure(
            kind=kind,
            reason=reason,
            message=message,
            status_code=getattr(error, "status_code", None),
        )
        logger.warning(
            f"{__name__}:_fail - {kind.value} failed for {self.subject_id} "
            f"({reason.value}): {message}"
        )
