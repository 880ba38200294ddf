"""Health, system-info and owner auth schemas."""

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    clients: int
    database: Literal["managed", "local"]
    timestamp: int


class SystemInfo(BaseModel):
    """Which backend answered and which features it provides."""

    database: Literal["managed", "local"]
    realtime: bool
    features: dict[str, bool]


class OwnerLoginRequest(BaseModel):
    password: str


class TokenResponse(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"
