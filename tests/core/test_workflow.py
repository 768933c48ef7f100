"""
Test suite for WorkflowController.

Drives the phase state machine against a mocked contract API with short
real timers: polling to completion, duplicate start suppression,
prerequisite guards, hydration, failure retention, retry, check-again and
close.

System role: Verification of per-contract workflow orchestration
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from contract_workflow.configs.polling import PollingSettings
from contract_workflow.core.exceptions import (
    PhaseNotReadyError,
    RemoteError,
    ValidationError,
)
from contract_workflow.core.job_store import JobStateStore
from contract_workflow.core.workflow import WorkflowController
from contract_workflow.models.contract import (
    ComplianceResult,
    ContractSummary,
    ExtractionStart,
    ExtractionStatus,
    RiskAnalysis,
)
from contract_workflow.models.job import JobKind, JobStatus
from contract_workflow.models.workflow import (
    FailureReason,
    PhaseStatus,
    WorkflowPhase,
)

SUBJECT = "contract-1"


def _processing() -> ExtractionStatus:
    return ExtractionStatus(status="processing")


def _text_ready(text: str = "Sample") -> ExtractionStatus:
    return ExtractionStatus(extraction_id="ext-1", status="completed", raw_text=text, page_count=2)


def _ai_ready() -> ExtractionStatus:
    return ExtractionStatus(
        extraction_id="ext-1",
        status="completed",
        raw_text="Sample",
        parties=[{"name": "Acme", "role": "vendor"}],
        amounts=[{"value": 1000, "currency": "USD"}],
    )


@pytest.fixture
def controller(store: JobStateStore, mock_api: AsyncMock, fast_polling: PollingSettings):
    """Controller with auto-advance disabled so each test drives one phase."""
    return WorkflowController(
        SUBJECT, store=store, api=mock_api, polling=fast_polling, auto_advance=False
    )


@pytest.fixture
def auto_controller(store: JobStateStore, mock_api: AsyncMock, fast_polling: PollingSettings):
    """Controller that advances through all phases."""
    return WorkflowController(SUBJECT, store=store, api=mock_api, polling=fast_polling)


class TestTextExtractionPhase:
    """Test suite for polling one phase to completion."""

    @pytest.mark.asyncio
    async def test_processing_then_completed_stores_result_and_stops_polling(
        self,
        controller: WorkflowController,
        store: JobStateStore,
        mock_api: AsyncMock,
        fast_polling: PollingSettings,
        sequence,
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.side_effect = sequence(_processing(), _text_ready("Sample"))

        started = await controller.start_phase(JobKind.TEXT_EXTRACTION)
        state = await controller.wait_until_settled()
        await asyncio.sleep(2 * fast_polling.interval_ms / 1000)

        job = store.get(SUBJECT, JobKind.TEXT_EXTRACTION)
        assert started is True
        assert job.status == JobStatus.COMPLETED
        assert job.result["rawText"] == "Sample"
        assert job.attempts == 2
        assert mock_api.get_extraction.await_count == 2
        assert controller.active_pollers == {}
        assert state.phase == WorkflowPhase.AWAITING_AI_ANALYSIS
        assert state.phases[JobKind.TEXT_EXTRACTION].status == PhaseStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_double_start_issues_one_request(
        self, controller: WorkflowController, mock_api: AsyncMock, sequence
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.side_effect = sequence(_processing(), _text_ready())

        first = await controller.start_phase(JobKind.TEXT_EXTRACTION)
        second = await controller.start_phase(JobKind.TEXT_EXTRACTION)
        await controller.wait_until_settled()

        assert first is True
        assert second is False
        assert mock_api.start_text_extraction.await_count == 1

    @pytest.mark.asyncio
    async def test_completed_without_text_fails_phase(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.return_value = ExtractionStatus(status="completed", raw_text="  ")

        await controller.start_phase(JobKind.TEXT_EXTRACTION)
        state = await controller.wait_until_settled()

        assert state.phase == WorkflowPhase.FAILED
        assert state.failure.reason == FailureReason.JOB_FAILED
        assert state.failure.message == "Text extraction produced no text"

    @pytest.mark.asyncio
    async def test_start_request_error_fails_phase(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.start_text_extraction.side_effect = RemoteError(500, "Storage offline")

        await controller.start_phase(JobKind.TEXT_EXTRACTION)
        state = await controller.wait_until_settled()

        assert state.phase == WorkflowPhase.FAILED
        assert state.failure.reason == FailureReason.REMOTE_ERROR
        assert state.failure.status_code == 500
        assert state.failure.message == "Storage offline"
        mock_api.get_extraction.assert_not_awaited()


class TestPrerequisites:
    """Test suite for phase ordering guards."""

    @pytest.mark.asyncio
    async def test_ai_start_while_text_processing_is_rejected(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.return_value = _processing()

        await controller.start_phase(JobKind.TEXT_EXTRACTION)

        with pytest.raises(PhaseNotReadyError):
            await controller.start_phase(JobKind.AI_EXTRACTION)

        mock_api.start_ai_analysis.assert_not_awaited()
        await controller.close()

    @pytest.mark.asyncio
    async def test_compliance_before_risk_is_rejected(
        self, controller: WorkflowController
    ) -> None:
        with pytest.raises(PhaseNotReadyError) as exc_info:
            await controller.start_phase(JobKind.COMPLIANCE_CHECK)

        assert exc_info.value.prerequisite == JobKind.RISK_ANALYSIS.value


class TestHydrate:
    """Test suite for reconciling with server state."""

    @pytest.mark.asyncio
    async def test_nothing_on_server_means_not_started(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.get_extraction.side_effect = RemoteError(404, "Extraction not found")
        mock_api.get_compliance_result.return_value = None

        state = await controller.hydrate()

        assert state.phase == WorkflowPhase.NOT_STARTED
        assert state.failure is None
        assert all(view.status == PhaseStatus.NOT_STARTED for view in state.phases.values())

    @pytest.mark.asyncio
    async def test_existing_results_are_seeded(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.get_extraction.return_value = _ai_ready()
        mock_api.get_compliance_result.return_value = None

        state = await controller.hydrate()

        assert state.phases[JobKind.TEXT_EXTRACTION].status == PhaseStatus.COMPLETED
        assert state.phases[JobKind.AI_EXTRACTION].status == PhaseStatus.COMPLETED
        assert state.phase == WorkflowPhase.ANALYZING_RISK

    @pytest.mark.asyncio
    async def test_text_ready_without_ai_data_leaves_ai_not_started(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.get_extraction.return_value = _text_ready()
        mock_api.get_compliance_result.return_value = None

        state = await controller.hydrate()

        assert state.phases[JobKind.AI_EXTRACTION].status == PhaseStatus.NOT_STARTED
        assert state.phase == WorkflowPhase.AWAITING_AI_ANALYSIS

    @pytest.mark.asyncio
    async def test_in_progress_extraction_resumes_polling(
        self, controller: WorkflowController, mock_api: AsyncMock, sequence
    ) -> None:
        mock_api.get_extraction.side_effect = sequence(_processing(), _text_ready())
        mock_api.get_compliance_result.return_value = None

        state = await controller.hydrate()
        assert state.phases[JobKind.TEXT_EXTRACTION].status == PhaseStatus.RUNNING

        state = await controller.wait_until_settled()

        assert state.phases[JobKind.TEXT_EXTRACTION].status == PhaseStatus.COMPLETED
        mock_api.start_text_extraction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_saved_risk_score_completes_risk_analysis(
        self, auto_controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.get_extraction.return_value = _ai_ready()
        mock_api.get_contract.return_value = ContractSummary(id=SUBJECT, risk_score=42)
        mock_api.get_compliance_result.return_value = ComplianceResult(score=88.0, passed=True)

        state = await auto_controller.hydrate()

        assert state.phases[JobKind.RISK_ANALYSIS].status == PhaseStatus.COMPLETED
        assert state.phases[JobKind.RISK_ANALYSIS].job.result == {"riskScore": 42}
        assert state.phase == WorkflowPhase.READY

        await auto_controller.run()
        await auto_controller.wait_until_settled()

        mock_api.run_risk_analysis.assert_not_awaited()
        mock_api.run_compliance_check.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_saved_risk_score_without_compliance_resumes_at_compliance(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.get_extraction.return_value = _ai_ready()
        mock_api.get_contract.return_value = ContractSummary(id=SUBJECT, risk_score=42)
        mock_api.get_compliance_result.return_value = None

        state = await controller.hydrate()

        assert state.phases[JobKind.COMPLIANCE_CHECK].status == PhaseStatus.NOT_STARTED
        assert state.phase == WorkflowPhase.AWAITING_COMPLIANCE_CHECK

    @pytest.mark.asyncio
    async def test_server_error_propagates(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.get_extraction.side_effect = RemoteError(500, "Database unavailable")

        with pytest.raises(RemoteError):
            await controller.hydrate()


class TestFailureAndRecovery:
    """Test suite for failure retention, retry and check-again."""

    @pytest.mark.asyncio
    async def test_later_failure_keeps_earlier_result_visible(
        self, auto_controller: WorkflowController, mock_api: AsyncMock, sequence
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.start_ai_analysis.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.side_effect = sequence(
            _text_ready("Sample"),
            ExtractionStatus(status="failed", raw_text="Sample", error="AI quota exceeded"),
        )

        await auto_controller.start_phase(JobKind.TEXT_EXTRACTION)
        state = await auto_controller.wait_until_settled()

        assert state.phase == WorkflowPhase.FAILED
        assert state.failure.kind == JobKind.AI_EXTRACTION
        assert state.failure.reason == FailureReason.JOB_FAILED
        assert state.failure.message == "AI quota exceeded"
        text_view = state.phases[JobKind.TEXT_EXTRACTION]
        assert text_view.status == PhaseStatus.COMPLETED
        assert text_view.job.result["rawText"] == "Sample"
        mock_api.run_risk_analysis.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_run_does_nothing_while_failed(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="failed")

        await controller.start_phase(JobKind.TEXT_EXTRACTION)
        await controller.wait_until_settled()
        state = await controller.run()

        assert state.phase == WorkflowPhase.FAILED
        assert mock_api.start_text_extraction.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_after_failure_runs_through_to_ready(
        self, auto_controller: WorkflowController, mock_api: AsyncMock, sequence
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.start_ai_analysis.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.side_effect = sequence(
            _text_ready(),
            ExtractionStatus(status="failed", error="AI quota exceeded"),
            _ai_ready(),
        )
        mock_api.run_risk_analysis.return_value = RiskAnalysis(risk_score=42.0)
        mock_api.run_compliance_check.return_value = ComplianceResult(score=90.0, passed=True)

        await auto_controller.start_phase(JobKind.TEXT_EXTRACTION)
        await auto_controller.wait_until_settled()

        retried = await auto_controller.retry(JobKind.AI_EXTRACTION)
        state = await auto_controller.wait_until_settled()

        assert retried is True
        assert state.phase == WorkflowPhase.READY
        assert state.failure is None
        assert state.phases[JobKind.RISK_ANALYSIS].job.result["riskScore"] == 42.0
        assert state.phases[JobKind.COMPLIANCE_CHECK].job.result["passed"] is True
        assert mock_api.start_ai_analysis.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_then_check_again_resumes_without_restart(
        self,
        controller: WorkflowController,
        store: JobStateStore,
        mock_api: AsyncMock,
        fast_polling: PollingSettings,
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.return_value = _processing()

        await controller.start_phase(JobKind.TEXT_EXTRACTION)
        state = await controller.wait_until_settled()

        assert state.phase == WorkflowPhase.FAILED
        assert state.failure.reason == FailureReason.TIMED_OUT
        assert state.failure.can_check_again is True
        assert state.phases[JobKind.TEXT_EXTRACTION].status == PhaseStatus.TIMED_OUT
        assert mock_api.get_extraction.await_count == fast_polling.max_attempts

        mock_api.get_extraction.return_value = _text_ready()
        resumed = await controller.check_again(JobKind.TEXT_EXTRACTION)
        state = await controller.wait_until_settled()

        assert resumed is True
        assert state.failure is None
        assert store.get(SUBJECT, JobKind.TEXT_EXTRACTION).status == JobStatus.COMPLETED
        assert mock_api.start_text_extraction.await_count == 1

    @pytest.mark.asyncio
    async def test_check_again_requires_timeout(
        self, controller: WorkflowController, mock_api: AsyncMock
    ) -> None:
        mock_api.start_text_extraction.return_value = ExtractionStart(status="failed")

        await controller.start_phase(JobKind.TEXT_EXTRACTION)
        await controller.wait_until_settled()

        with pytest.raises(ValidationError):
            await controller.check_again(JobKind.TEXT_EXTRACTION)


class TestClose:
    """Test suite for closing a workflow."""

    @pytest.mark.asyncio
    async def test_close_mid_poll_stops_queries_and_clears_state(
        self,
        store: JobStateStore,
        mock_api: AsyncMock,
    ) -> None:
        polling = PollingSettings(interval_ms=10, max_attempts=100)
        controller = WorkflowController(SUBJECT, store=store, api=mock_api, polling=polling)
        mock_api.start_text_extraction.return_value = ExtractionStart(status="processing")
        mock_api.get_extraction.return_value = _processing()

        await controller.start_phase(JobKind.TEXT_EXTRACTION)
        await asyncio.sleep(0.035)
        await controller.close()
        calls = mock_api.get_extraction.await_count
        await asyncio.sleep(0.05)

        assert calls >= 1
        assert mock_api.get_extraction.await_count == calls
        assert store.jobs_for(SUBJECT) == {}
        assert controller.active_pollers == {}
        assert controller.snapshot().closed is True

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_blocks_new_work(
        self, controller: WorkflowController
    ) -> None:
        await controller.close()
        await controller.close()

        with pytest.raises(ValidationError):
            await controller.start_phase(JobKind.TEXT_EXTRACTION)
