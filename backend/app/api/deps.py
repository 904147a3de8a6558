"""Shared dependencies for API routes."""

from __future__ import annotations

from typing import Any, AsyncGenerator, Callable

import redis.asyncio as redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.batch.control import make_redis
from app.core.constants import UserRole
from app.core.security import decode_access_token
from app.db.models.user import User
from app.db.session import async_session
from app.db.session import get_db as _get_db
from app.repositories import users as user_repository
from app.rules.context import RuleContext

security_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session."""
    async for session in _get_db():
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for routes that run their own retried transaction."""
    return async_session


async def get_redis() -> AsyncGenerator[redis.Redis, None]:
    client = make_redis()
    try:
        yield client
    finally:
        await client.aclose()


async def get_current_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
) -> dict[str, Any]:
    """Extract and validate JWT payload from bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials were not provided",
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return payload


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    token_payload: dict[str, Any] = Depends(get_current_token_payload),
) -> User:
    """Resolve an active user from JWT payload."""
    subject = token_payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        ) from None

    user = await user_repository.get_active_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive user",
        )

    return user


def require_roles(*roles: UserRole) -> Callable[..., Any]:
    """Dependency that admits only users holding one of ``roles``."""
    allowed = {r.value for r in roles}

    async def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(sorted(allowed))}",
            )
        return current_user

    return _check


require_writer = require_roles(UserRole.ADMIN, UserRole.OPERATOR)


async def get_rule_context(
    current_user: User = Depends(get_current_user),
    token_payload: dict[str, Any] = Depends(get_current_token_payload),
) -> RuleContext:
    """Actor of every rule fired by the request, taken from the token's ``actor`` claim."""
    return RuleContext(actor=token_payload.get("actor") or current_user.actor)
