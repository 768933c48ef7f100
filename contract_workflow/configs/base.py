"""
Shared settings base.

Every settings section reads the same ``.env`` file and ignores unknown
keys; sections only add their own ``env_prefix``.

Dependencies: pydantic_settings
System role: Common loader for all configuration sections
"""

from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict


class BaseSettings(PydanticBaseSettings):
    """Base for configuration sections (``.env`` file, case-insensitive)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
