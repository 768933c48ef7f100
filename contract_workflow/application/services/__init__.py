"""Service orchestrators."""

from .workflow_service import WorkflowService

__all__ = ["WorkflowService"]
