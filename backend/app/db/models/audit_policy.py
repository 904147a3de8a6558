"""
AuditPolicyRecord — append-only log of policy mutations.

policy_id is deliberately a plain column, not a foreign key: the audit
row for a DELETE must outlive the policy it describes.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class AuditPolicyRecord(Base):
    __tablename__ = "audit_policy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    operation: Mapped[str] = mapped_column(String(10), nullable=False)  # INSERT | UPDATE | DELETE
    policy_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    actor: Mapped[str] = mapped_column(String(320), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditPolicyRecord {self.operation} policy={self.policy_id} by={self.actor}>"
