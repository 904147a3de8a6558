"""
Authentication endpoints.

The token carries an ``actor`` claim; every policy mutation made with it
is audited under that identity.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db
from app.api.schemas.auth import CurrentUserResponse, LoginRequest, TokenResponse
from app.core.config import settings
from app.core.logging import get_logger
from app.core.security import create_access_token
from app.db.models.user import User
from app.repositories import users as user_repository

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    user = await user_repository.authenticate_user(db, email=payload.email, password=payload.password)
    if user is None:
        logger.info("Login rejected", email=payload.email.lower())
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    await user_repository.record_login(db, user.id)
    return TokenResponse(
        access_token=create_access_token(user_repository.token_claims(user)),
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        actor=user.actor,
        role=user.role,
    )


@router.get("/me", response_model=CurrentUserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)) -> CurrentUserResponse:
    """Who the token belongs to, and whether it may change policy data."""
    return CurrentUserResponse.model_validate(current_user)
