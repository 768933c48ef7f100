"""
Common response models and utilities.

Envelope returned by every contract service endpoint.

Dependencies: pydantic
System role: Common API response structures
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ApiEnvelope(BaseModel):
    """Response envelope: {success, data, message?}."""

    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: Any = None
    message: str | None = Field(default=None, description="Display message")
    error: str | None = Field(default=None, description="Error detail")

