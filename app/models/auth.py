"""Pydantic models for login and the current user."""

from typing import Optional
from pydantic import BaseModel, Field

from app.models.request import ContextResponse


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=120)
    password: str = Field(..., min_length=1, max_length=256)


class UserResponse(BaseModel):
    id: int
    username: str


class MeResponse(BaseModel):
    user: UserResponse
    context: Optional[ContextResponse] = Field(
        None,
        description="Selected key and region, if any"
    )
