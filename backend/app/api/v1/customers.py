"""Customer CRUD endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, require_writer
from app.api.schemas.customers import CustomerCreate, CustomerRead, CustomerUpdate
from app.repositories import customers as customer_repository

router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
    dependencies=[Depends(get_current_user)],
)


@router.post(
    "/",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_writer)],
)
async def create_customer(payload: CustomerCreate, db: AsyncSession = Depends(get_db)) -> CustomerRead:
    customer = await customer_repository.create_customer(db, **payload.model_dump())
    return CustomerRead.model_validate(customer)


@router.get("/", response_model=list[CustomerRead])
async def list_customers(
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> list[CustomerRead]:
    customers = await customer_repository.list_customers(db, offset=offset, limit=limit)
    return [CustomerRead.model_validate(c) for c in customers]


@router.get("/{customer_id}", response_model=CustomerRead)
async def get_customer(customer_id: int, db: AsyncSession = Depends(get_db)) -> CustomerRead:
    return CustomerRead.model_validate(await customer_repository.get_customer(db, customer_id))


@router.patch("/{customer_id}", response_model=CustomerRead, dependencies=[Depends(require_writer)])
async def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
) -> CustomerRead:
    customer = await customer_repository.update_customer(
        db, customer_id, **payload.model_dump(exclude_unset=True)
    )
    return CustomerRead.model_validate(customer)


@router.delete(
    "/{customer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_writer)],
)
async def delete_customer(customer_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await customer_repository.delete_customer(db, customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
