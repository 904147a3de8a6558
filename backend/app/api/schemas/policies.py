"""Policy, claim, payment and audit schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.core.constants import AuditOperation, ClaimStatus


# ─── Policies ─────────────────────────────────────────────

class PolicyCreate(BaseModel):
    policy_type: str = Field(..., min_length=1, max_length=100)
    coverage_amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    premium_amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    start_date: date
    end_date: date
    customer_id: int
    agent_id: int | None = None
    approval_marker: str | None = Field(default=None, max_length=255)


class PolicyUpdate(BaseModel):
    policy_type: str | None = Field(default=None, min_length=1, max_length=100)
    coverage_amount: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    premium_amount: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    start_date: date | None = None
    end_date: date | None = None
    approval_marker: str | None = Field(default=None, max_length=255)


class PolicyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_type: str
    coverage_amount: Decimal
    premium_amount: Decimal
    start_date: date
    end_date: date
    customer_id: int
    agent_id: int | None
    approval_marker: str | None
    renewed_from_id: int | None
    created_at: datetime
    updated_at: datetime


class AuditRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    operation: AuditOperation
    policy_id: int
    actor: str
    changed_at: datetime
    details: dict[str, Any] | None


# ─── Claims ───────────────────────────────────────────────

class ClaimCreate(BaseModel):
    """Status is never supplied by the client; it is classified on insert."""

    model_config = ConfigDict(str_strip_whitespace=True)

    policy_id: int
    claim_amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    incident_description: str = Field(..., min_length=1)
    claim_date: date | None = None


class ClaimRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_id: int
    claim_amount: Decimal
    claim_date: date
    status: ClaimStatus
    incident_description: str
    created_at: datetime


# ─── Payments ─────────────────────────────────────────────

class PaymentCreate(BaseModel):
    policy_id: int
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_date: date | None = None
    customer_id: int | None = None


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    policy_id: int
    customer_id: int
    payment_date: date
    amount: Decimal
    payment_method: str
    created_at: datetime
