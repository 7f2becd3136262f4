"""Pydantic models shared across API routes."""

from typing import Optional
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="Application version")
    timestamp: str = Field(..., description="Current timestamp")


class MessageResponse(BaseModel):
    """Plain acknowledgement for actions without a richer result."""

    success: bool = Field(True, description="Whether the action was accepted")
    message: Optional[str] = Field(None, description="Optional message")


class ContextRequest(BaseModel):
    """Selects which stored key and region the session's AWS calls use."""

    key_id: int = Field(..., gt=0, description="Stored API key id")
    region: Optional[str] = Field(
        None,
        description="Region or availability zone name; normalised to a region"
    )


class ContextResponse(BaseModel):
    key_id: Optional[int] = Field(None, description="Selected API key id")
    key_name: Optional[str] = Field(None, description="Selected API key name")
    region: str = Field(..., description="Region used for AWS calls")
