"""
Agent model — the intermediary who writes policies and earns commission.

`commission` is a running balance.  Only CommissionAccrual writes to it,
always through a single atomic ``UPDATE ... SET commission = commission + x``.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.models.base import MONEY, ZERO, Base, utcnow

if TYPE_CHECKING:
    from app.db.models.policy import Policy


class Agent(Base):
    __tablename__ = "agents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    commission: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=ZERO, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    policies: Mapped[List["Policy"]] = relationship(back_populates="agent")

    def __repr__(self) -> str:
        return f"<Agent id={self.id} {self.email} commission={self.commission}>"
