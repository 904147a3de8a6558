"""
Claim model.

(policy_id, incident_description) is unique: one claim per incident.
status is assigned by ClaimClassifier on insert and may later be moved
to Approved / Rejected by an operator.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.models.base import MONEY, Base, utcnow

if TYPE_CHECKING:
    from app.db.models.policy import Policy


class Claim(Base):
    __tablename__ = "claims"
    __table_args__ = (
        UniqueConstraint(
            "policy_id", "incident_description", name="uq_claims_policy_incident"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    policy_id: Mapped[int] = mapped_column(
        ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    claim_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    claim_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    incident_description: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    policy: Mapped["Policy"] = relationship(back_populates="claims")

    def __repr__(self) -> str:
        return f"<Claim id={self.id} policy={self.policy_id} amount={self.claim_amount} status={self.status}>"
