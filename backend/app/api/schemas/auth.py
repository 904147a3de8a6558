"""Login and current-user schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.core.constants import UserRole


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=256)


class TokenResponse(BaseModel):
    """Bearer token plus the identity it will stamp on audit rows."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., ge=1)
    actor: str
    role: UserRole


class CurrentUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    role: UserRole
    actor: str
    can_write: bool
    is_active: bool
    last_login_at: datetime | None
