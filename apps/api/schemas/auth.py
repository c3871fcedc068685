from __future__ import annotations

from pydantic import BaseModel


class CredentialsRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class TokenResponse(BaseModel):
    token: str
