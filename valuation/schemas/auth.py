from __future__ import annotations
from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    clientId: str = Field(..., description="bank / tenant the account belongs to")
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeResponse(BaseModel):
    username: str
    clientId: str
    role: str
    displayName: str
