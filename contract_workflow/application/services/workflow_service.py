"""
Workflow service orchestrator.

Keeps one WorkflowController per open contract. All controllers share the
injected job state store and contract API; opening a contract hydrates its
state from the service, closing it stops every poller and drops the state.

Dependencies: contract_workflow.core.workflow, contract_workflow.boundary.http
System role: Contract workflow use case orchestration
"""

import logging
from pathlib import Path

from contract_workflow.boundary.http.contract_api import ContractApi
from contract_workflow.configs.polling import PollingSettings
from contract_workflow.core.exceptions import WorkflowNotFoundError
from contract_workflow.core.job_store import JobStateStore
from contract_workflow.core.workflow import WorkflowController
from contract_workflow.models.contract import ContractSummary
from contract_workflow.models.job import JobKind
from contract_workflow.models.workflow import WorkflowState

logger = logging.getLogger(__name__)


class WorkflowService:
    """Workflow service orchestrator."""

    def __init__(
        self,
        api: ContractApi,
        store: JobStateStore | None = None,
        polling: PollingSettings | None = None,
    ) -> None:
        """
        Initialize workflow service.

        Args:
            api: Contract service endpoints
            store: Job state store shared by all controllers
            polling: Polling settings handed to each controller
        """
        self.api = api
        self.store = store or JobStateStore()
        self.polling = polling or PollingSettings()
        self._controllers: dict[str, WorkflowController] = {}

    def _controller(self, contract_id: str) -> WorkflowController:
        controller = self._controllers.get(contract_id)
        if controller is None:
            raise WorkflowNotFoundError(contract_id)
        return controller

    @property
    def open_contracts(self) -> list[str]:
        return list(self._controllers)

    async def open_contract(self, contract_id: str, auto_run: bool = True) -> WorkflowState:
        """
        Open (or reuse) the workflow of a contract.

        Args:
            contract_id: Contract ID
            auto_run: Start the next incomplete phase after hydrating

        Returns:
            WorkflowState: Snapshot after hydrating
        """
        controller = self._controllers.get(contract_id)
        if controller is None:
            controller = WorkflowController(
                contract_id,
                store=self.store,
                api=self.api,
                polling=self.polling,
            )
            self._controllers[contract_id] = controller
            try:
                await controller.hydrate()
            except Exception as e:
                logger.error(
                    f"{__name__}:open_contract - Hydration failed for {contract_id}: {e}"
                )
                if self._controllers.get(contract_id) is controller:
                    del self._controllers[contract_id]
                await controller.close()
                raise
            logger.info(f"{__name__}:open_contract - Opened workflow for {contract_id}")

        if auto_run:
            return await controller.run()
        return controller.snapshot()

    def get_state(self, contract_id: str) -> WorkflowState:
        """
        Current workflow state.

        Raises:
            WorkflowNotFoundError: Contract not open
        """
        return self._controller(contract_id).snapshot()

    async def start_phase(self, contract_id: str, kind: JobKind) -> WorkflowState:
        await self._controller(contract_id).start_phase(kind)
        return self.get_state(contract_id)

    async def retry_phase(self, contract_id: str, kind: JobKind) -> WorkflowState:
        await self._controller(contract_id).retry(kind)
        return self.get_state(contract_id)

    async def check_again(self, contract_id: str, kind: JobKind) -> WorkflowState:
        await self._controller(contract_id).check_again(kind)
        return self.get_state(contract_id)

    async def wait_until_settled(self, contract_id: str) -> WorkflowState:
        return await self._controller(contract_id).wait_until_settled()

    async def close_contract(self, contract_id: str) -> None:
        """
        Close a contract's workflow. Unknown contracts are ignored.

        Args:
            contract_id: Contract ID
        """
        controller = self._controllers.pop(contract_id, None)
        if controller is not None:
            await controller.close()

    async def upload_and_analyze(
        self,
        file_path: str | Path,
        title: str,
        vendor: str | None = None,
        description: str | None = None,
    ) -> tuple[ContractSummary, WorkflowState]:
        """
        Upload a contract and start its analysis workflow.

        Args:
            file_path: Local path of the document
            title: Contract title
            vendor: Counterparty name
            description: Free-text description

        Returns:
            tuple[ContractSummary, WorkflowState]: Created contract and its
                workflow snapshot
        """
        contract = await self.api.upload_contract(
            file_path, title=title, vendor=vendor, description=description
        )
        state = await self.open_contract(contract.id, auto_run=True)
        return contract, state

    async def shutdown(self) -> None:
        """Close every open workflow."""
        for contract_id in list(self._controllers):
            await self.close_contract(contract_id)
