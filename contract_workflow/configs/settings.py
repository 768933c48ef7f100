"""
Unified application settings.

Aggregates the API, polling and observability sections into one Settings
object handed to the DI container.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from contract_workflow.configs.api import ApiSettings
from contract_workflow.configs.base import BaseSettings
from contract_workflow.configs.observability import ObservabilitySettings
from contract_workflow.configs.polling import PollingSettings


class Settings(BaseSettings):
    """Application settings."""

    environment: str = Field(
        default="development",
        description="Deployment environment (development, staging, production)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    api: ApiSettings = Field(default_factory=ApiSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Environment variables are read once, on first call.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
