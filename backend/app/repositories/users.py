"""
User repository — back-office identities for the API.

Repository rules:
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.constants import UserRole
from app.core.security import hash_password, verify_password
from app.db.models.user import User
from app.db.transaction import translate_db_errors


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    full_name: str,
    role: str = UserRole.VIEWER.value,
) -> User:
    """Create a new user with a hashed password."""
    user = User(
        email=email.lower().strip(),
        hashed_password=hash_password(password),
        full_name=full_name.strip(),
        role=role.upper(),
    )
    db.add(user)
    with translate_db_errors(entity="User", message="A user with this e-mail already exists"):
        await db.flush()
    return user


async def get_active_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Case-insensitive lookup."""
    stmt = select(User).where(User.email == email.lower().strip())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def authenticate_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
) -> User | None:
    """Validate credentials and return the active user on success."""
    user = await get_user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def record_login(db: AsyncSession, user_id: int) -> None:
    stmt = update(User).where(User.id == user_id).values(last_login_at=datetime.now(timezone.utc))
    await db.execute(stmt)
    await db.flush()


def token_claims(user: User) -> dict[str, str]:
    """JWT claims for ``user``.  ``actor`` is the identity its audit rows record."""
    return {"sub": str(user.id), "role": user.role, "actor": user.actor}
