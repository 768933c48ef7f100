"""
Test suite for workflow status endpoints.

Tests routing, response shapes and the exception-to-status mapping with the
workflow service replaced through dependency_overrides.

System role: Verification of the workflow HTTP API
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from contract_workflow.api.deps.dependencies import get_workflow_service
from contract_workflow.api.main import create_app
from contract_workflow.application.services.workflow_service import WorkflowService
from contract_workflow.core.exceptions import (
    JobFailed,
    NetworkError,
    PhaseNotReadyError,
    RemoteError,
    ValidationError,
    WorkflowNotFoundError,
)
from contract_workflow.models.job import Job, JobKind, JobStatus
from contract_workflow.models.workflow import (
    PhaseStatus,
    PhaseView,
    WorkflowPhase,
    WorkflowState,
)

PREFIX = "/api/v1/contracts"


@pytest.fixture
def extracting_state() -> WorkflowState:
    """Workflow with text extraction in progress."""
    job = Job(
        subject_id="c1",
        kind=JobKind.TEXT_EXTRACTION,
        status=JobStatus.PROCESSING,
        attempts=2,
        generation=1,
    )
    return WorkflowState(
        subject_id="c1",
        phase=WorkflowPhase.EXTRACTING,
        phases={
            JobKind.TEXT_EXTRACTION: PhaseView(
                kind=JobKind.TEXT_EXTRACTION, status=PhaseStatus.RUNNING, job=job
            )
        },
    )


@pytest.fixture
def mock_service(extracting_state: WorkflowState) -> MagicMock:
    """Provide mock workflow service."""
    service = MagicMock(spec=WorkflowService)
    service.get_state.return_value = extracting_state
    service.open_contract.return_value = extracting_state
    service.start_phase.return_value = extracting_state
    service.retry_phase.return_value = extracting_state
    service.check_again.return_value = extracting_state
    return service


@pytest.fixture
def client(mock_service: MagicMock) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_workflow_service] = lambda: mock_service
    return TestClient(app)


class TestOpenAndRead:
    """Test suite for opening and reading workflow state."""

    def test_open_workflow_returns_state(self, client: TestClient, mock_service: MagicMock) -> None:
        response = client.post(f"{PREFIX}/c1/workflow")

        assert response.status_code == 200
        body = response.json()
        assert body["phase"] == "extracting"
        assert body["phases"]["text_extraction"]["status"] == "running"
        assert body["phases"]["text_extraction"]["job"]["attempts"] == 2
        mock_service.open_contract.assert_awaited_once_with("c1", auto_run=True)

    def test_open_workflow_without_auto_run(self, client: TestClient, mock_service: MagicMock) -> None:
        client.post(f"{PREFIX}/c1/workflow", params={"auto_run": "false"})

        mock_service.open_contract.assert_awaited_once_with("c1", auto_run=False)

    def test_get_workflow(self, client: TestClient) -> None:
        response = client.get(f"{PREFIX}/c1/workflow")

        assert response.status_code == 200
        assert response.json()["subject_id"] == "c1"

    def test_get_unopened_workflow_returns_404(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        mock_service.get_state.side_effect = WorkflowNotFoundError("c2")

        response = client.get(f"{PREFIX}/c2/workflow")

        assert response.status_code == 404
        assert response.json()["detail"] == "No workflow open for contract: c2"


class TestPhaseActions:
    """Test suite for start/retry/check-again endpoints."""

    def test_start_phase(self, client: TestClient, mock_service: MagicMock) -> None:
        response = client.post(f"{PREFIX}/c1/workflow/phases/ai_extraction/start")

        assert response.status_code == 200
        mock_service.start_phase.assert_awaited_once_with("c1", JobKind.AI_EXTRACTION)

    def test_unknown_kind_is_rejected(self, client: TestClient) -> None:
        response = client.post(f"{PREFIX}/c1/workflow/phases/summarize/start")

        assert response.status_code == 422

    def test_start_before_prerequisite_returns_409(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        mock_service.start_phase.side_effect = PhaseNotReadyError(
            "ai_extraction", "text_extraction"
        )

        response = client.post(f"{PREFIX}/c1/workflow/phases/ai_extraction/start")

        assert response.status_code == 409

    def test_retry_phase(self, client: TestClient, mock_service: MagicMock) -> None:
        response = client.post(f"{PREFIX}/c1/workflow/phases/compliance_check/retry")

        assert response.status_code == 200
        mock_service.retry_phase.assert_awaited_once_with("c1", JobKind.COMPLIANCE_CHECK)

    def test_check_again_without_timeout_returns_400(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        mock_service.check_again.side_effect = ValidationError(
            "text_extraction has not timed out; use retry instead", field="kind"
        )

        response = client.post(f"{PREFIX}/c1/workflow/phases/text_extraction/check-again")

        assert response.status_code == 400


class TestErrorMapping:
    """Test suite for remote failures surfacing through the API."""

    @pytest.mark.parametrize(
        "error, expected_status",
        [
            (RemoteError(500, "Extraction service crashed"), 502),
            (RemoteError(404, "Contract not found"), 502),
            (NetworkError("Could not reach contract service: ConnectError"), 503),
            (JobFailed("text_extraction", "Job failed"), 500),
        ],
    )
    def test_open_maps_errors(
        self,
        client: TestClient,
        mock_service: MagicMock,
        error: Exception,
        expected_status: int,
    ) -> None:
        mock_service.open_contract.side_effect = error

        response = client.post(f"{PREFIX}/c1/workflow")

        assert response.status_code == expected_status
        assert response.json()["detail"] == error.message


class TestCloseWorkflow:
    """Test suite for closing workflows."""

    def test_close_returns_204(self, client: TestClient, mock_service: MagicMock) -> None:
        response = client.delete(f"{PREFIX}/c1/workflow")

        assert response.status_code == 204
        mock_service.close_contract.assert_awaited_once_with("c1")


class TestCorrelation:
    """Test suite for correlation ID propagation."""

    def test_incoming_correlation_id_is_echoed(self, client: TestClient) -> None:
        response = client.get(
            f"{PREFIX}/c1/workflow", headers={"X-Correlation-ID": "req-42"}
        )

        assert response.headers["X-Correlation-ID"] == "req-42"

    def test_missing_correlation_id_is_generated(self, client: TestClient) -> None:
        response = client.get(f"{PREFIX}/c1/workflow")

        assert response.headers["X-Correlation-ID"]
