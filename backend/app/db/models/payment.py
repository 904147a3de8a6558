"""
Payment model.

The partial unique index on (policy_id, payment_date) for Auto-Debit rows
is the idempotency key of the recurring billing job.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.models.base import MONEY, Base, utcnow

if TYPE_CHECKING:
    from app.db.models.policy import Policy

_AUTO_DEBIT_ONLY = text("payment_method = 'Auto-Debit'")


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        Index(
            "ux_payments_auto_debit_per_day",
            "policy_id",
            "payment_date",
            unique=True,
            postgresql_where=_AUTO_DEBIT_ONLY,
            sqlite_where=_AUTO_DEBIT_ONLY,
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    policy_id: Mapped[int] = mapped_column(
        ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    policy: Mapped["Policy"] = relationship(back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment id={self.id} policy={self.policy_id} {self.payment_date} {self.amount} {self.payment_method}>"
