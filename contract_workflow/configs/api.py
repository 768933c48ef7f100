"""
Contract service API settings.

Connection parameters for the remote contract service REST API.

Dependencies: pydantic_settings
System role: Remote API client configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from contract_workflow.configs.base import BaseSettings


class ApiSettings(BaseSettings):
    """Remote contract service connection settings."""

    model_config = SettingsConfigDict(env_prefix="CONTRACT_API_")

    base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the contract service API",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds",
    )
    token: str | None = Field(
        default=None,
        description="Static bearer token used when no session token is supplied",
    )
    read_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for one-shot reads on network failure",
    )
