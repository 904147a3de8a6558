"""Manual payment endpoints.  Auto-Debit rows come from the billing job."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, get_rule_context, require_writer
from app.api.schemas.policies import PaymentCreate, PaymentRead
from app.repositories import payments as payment_repository
from app.rules.context import RuleContext

router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
    dependencies=[Depends(get_current_user)],
)


@router.post(
    "/",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_writer)],
)
async def create_payment(
    payload: PaymentCreate,
    ctx: RuleContext = Depends(get_rule_context),
    db: AsyncSession = Depends(get_db),
) -> PaymentRead:
    payment = await payment_repository.create_payment(db, ctx, **payload.model_dump())
    return PaymentRead.model_validate(payment)


@router.get("/", response_model=list[PaymentRead])
async def list_payments(
    policy_id: int | None = None,
    customer_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> list[PaymentRead]:
    payments = await payment_repository.list_payments(
        db, policy_id=policy_id, customer_id=customer_id, offset=offset, limit=limit
    )
    return [PaymentRead.model_validate(p) for p in payments]


@router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment(payment_id: int, db: AsyncSession = Depends(get_db)) -> PaymentRead:
    return PaymentRead.model_validate(await payment_repository.get_payment(db, payment_id))
