"""
Policy model — the aggregation root referenced by claims and payments.

approval_marker:
    NULL            — not yet approved
    "Expired"       — set by PolicyExpirer once end_date has passed
    "Auto-Renewed"  — successor created by the renewal job
    anything else   — identity of the issuer who approved it

renewed_from_id points an auto-renewed policy at its source so the
renewal job never renews the same source twice.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.models.base import MONEY, Base, utcnow

if TYPE_CHECKING:
    from app.db.models.agent import Agent
    from app.db.models.claim import Claim
    from app.db.models.customer import Customer
    from app.db.models.payment import Payment


class Policy(Base):
    __tablename__ = "policies"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="date_range"),
        CheckConstraint("premium_amount > 0", name="premium_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    policy_type: Mapped[str] = mapped_column(String(100), nullable=False)
    coverage_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    premium_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    agent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("agents.id", ondelete="SET NULL"), nullable=True, index=True
    )
    approval_marker: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    renewed_from_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("policies.id", ondelete="SET NULL"), nullable=True, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    customer: Mapped["Customer"] = relationship(back_populates="policies")
    agent: Mapped[Optional["Agent"]] = relationship(back_populates="policies")
    claims: Mapped[List["Claim"]] = relationship(back_populates="policy", passive_deletes=True)
    payments: Mapped[List["Payment"]] = relationship(back_populates="policy", passive_deletes=True)

    def __repr__(self) -> str:
        return (
            f"<Policy id={self.id} type={self.policy_type} "
            f"{self.start_date}..{self.end_date} marker={self.approval_marker}>"
        )
