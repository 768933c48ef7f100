"""
Exception hierarchy for the contract workflow client.

Provides layered exception structure for transport, remote and workflow
errors. All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class ContractWorkflowException(Exception):
    """Base exception for all contract workflow errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(ContractWorkflowException):
    """Raised when input or response validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class NetworkError(ContractWorkflowException):
    """Raised when the contract service could not be reached."""

    def __init__(
        self,
        message: str,
        method: str | None = None,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize network error.

        Args:
            message: Error message
            method: HTTP method of the failed request
            path: Request path of the failed request
            details: Additional context
        """
        details = details or {}
        if method:
            details["method"] = method
        if path:
            details["path"] = path
        super().__init__(message, details)


class RemoteError(ContractWorkflowException):
    """Raised when the contract service answered with a rejection."""

    def __init__(
        self,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize remote error.

        Args:
            status_code: HTTP status code returned by the service
            message: Error message taken from the response body
            details: Additional context
        """
        self.status_code = status_code
        details = details or {}
        details["status_code"] = status_code
        super().__init__(message, details)

    @property
    def is_not_found(self) -> bool:
        """True for 404 responses."""
        return self.status_code == 404


class PollingTimedOut(ContractWorkflowException):
    """Raised when polling exhausted its attempts without a terminal status."""

    def __init__(self, attempts: int, details: dict[str, Any] | None = None) -> None:
        """
        Initialize polling timeout.

        Args:
            attempts: Number of status queries issued
            details: Additional context
        """
        self.attempts = attempts
        details = details or {}
        details["attempts"] = attempts
        super().__init__(
            f"Still processing after {attempts} status checks", details
        )


class JobFailed(ContractWorkflowException):
    """Raised when the service reported a job as failed."""

    def __init__(
        self,
        kind: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize job failure.

        Args:
            kind: Job kind that failed
            message: Error message reported by the service
            details: Additional context
        """
        self.kind = kind
        details = details or {}
        details["kind"] = kind
        super().__init__(message, details)


class PhaseNotReadyError(ContractWorkflowException):
    """Raised when a phase is started before its prerequisite completed."""

    def __init__(
        self,
        kind: str,
        prerequisite: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize phase-not-ready error.

        Args:
            kind: Job kind that was requested
            prerequisite: Job kind that must complete first
        """
        self.kind = kind
        self.prerequisite = prerequisite
        details = details or {}
        details.update({"kind": kind, "prerequisite": prerequisite})
        super().__init__(f"Cannot start {kind} before {prerequisite} has completed", details)


class WorkflowNotFoundError(ContractWorkflowException):
    """Raised when no workflow is open for a contract."""

    def __init__(self, subject_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["subject_id"] = subject_id
        super().__init__(f"No workflow open for contract: {subject_id}", details)
