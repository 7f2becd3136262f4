"""Pydantic models for stored AWS API keys."""

from typing import Optional
from pydantic import BaseModel, Field


class KeyRequest(BaseModel):
    """Create or replace a stored key. A blank name becomes the current time."""

    name: Optional[str] = Field(None, max_length=120, description="Display name")
    access_key: str = Field(..., description="AWS access key id")
    secret_key: str = Field(..., description="AWS secret access key")
    proxy: Optional[str] = Field(
        "",
        description="Optional HTTP(S) proxy for calls made with this key, e.g. http://host:3128"
    )


class KeyInfoResponse(BaseModel):
    id: int
    name: str
    access_key: str = Field(..., description="Masked access key id")
    has_secret_key: bool
    proxy: str
    created_at: Optional[str]


class ProxyCheckResponse(BaseModel):
    key_id: int
    ip: str = Field(..., description="Address requests leave from")
    as_text: str = Field(..., description="Owning network, usually 'AS<n> <name>'")
    city: str = ""
    region: str = ""
    country: str = ""
