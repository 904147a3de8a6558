"""
User model — authentication and authorization for the back-office API.

The user's e-mail is the acting identity recorded on audit rows.

Roles:
    ADMIN    — Full access (users, batch control)
    OPERATOR — Create/update customers, policies, claims, payments
    VIEWER   — Read-only
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.constants import UserRole
from app.db.models.base import Base, utcnow

WRITER_ROLES = frozenset({UserRole.ADMIN.value, UserRole.OPERATOR.value})


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.VIEWER.value
    )  # ADMIN | OPERATOR | VIEWER

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def actor(self) -> str:
        """Identity written to audit rows for this user's mutations."""
        return self.email

    @property
    def can_write(self) -> bool:
        return self.role in WRITER_ROLES

    def __repr__(self) -> str:
        return f"<User id={self.id} {self.email} role={self.role} active={self.is_active}>"
