"""
Observability configuration settings.

Settings for logging and request correlation.

Dependencies: pydantic_settings
System role: Observability configuration for logging
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class ObservabilitySettings(BaseSettings):
    """Observability configuration for logging and correlation."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    correlation_header: str = Field(
        default="X-Correlation-ID",
        description="Header carrying the correlation ID on outgoing requests",
    )

    class Config:
        """Pydantic config for environment variable loading."""

        env_prefix = "OBSERVABILITY_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
