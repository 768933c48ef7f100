"""
Workflow error handling utilities.

Provides a decorator for consistent error handling across workflow
endpoints.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status

from contract_workflow.core.exceptions import (
    ContractWorkflowException,
    NetworkError,
    PhaseNotReadyError,
    RemoteError,
    ValidationError,
    WorkflowNotFoundError,
)

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def handle_workflow_errors(func: F) -> F:
    """
    Decorator to map workflow exceptions onto HTTPExceptions.

    - WorkflowNotFoundError -> 404
    - PhaseNotReadyError -> 409
    - ValidationError -> 400
    - RemoteError -> 502 (any status from the service, 404 included)
    - NetworkError -> 503
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except WorkflowNotFoundError as e:
            logger.warning("Workflow not open", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

        except PhaseNotReadyError as e:
            logger.warning("Phase not ready", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

        except ValidationError as e:
            logger.warning("Invalid workflow request", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

        except RemoteError as e:
            logger.warning("Contract service rejected request", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

        except NetworkError as e:
            logger.warning("Contract service unreachable", extra={"error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message
            )

        except ContractWorkflowException as e:
            logger.exception("Workflow operation failed", extra={"error": str(e)})
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
            )

    return wrapper  # type: ignore
