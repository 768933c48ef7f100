"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    get_service_cache,
    get_workflow_service,
)

__all__ = [
    "get_service_cache",
    "get_workflow_service",
]
