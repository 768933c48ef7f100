"""
Polling configuration settings.

Interval and attempt ceiling shared by every workflow phase poller.

Dependencies: pydantic_settings
System role: Poller tuning parameters
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from contract_workflow.configs.base import BaseSettings


class PollingSettings(BaseSettings):
    """Status polling configuration."""

    model_config = SettingsConfigDict(env_prefix="POLLING_")

    interval_ms: int = Field(
        default=3000,
        gt=0,
        description="Delay between status queries in milliseconds",
    )
    max_attempts: int = Field(
        default=60,
        ge=1,
        description="Status queries issued before giving up on a phase",
    )
    immediate: bool = Field(
        default=True,
        description="Issue the first status query without waiting an interval",
    )

    @property
    def ceiling_seconds(self) -> float:
        """Wall-clock ceiling for a single phase."""
        return self.interval_ms * self.max_attempts / 1000
