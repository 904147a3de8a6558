"""Customer repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.customer import Customer
from app.db.models.policy import Policy
from app.db.transaction import translate_db_errors
from app.repositories.base import clean_fields, count_where, require
from app.rules.errors import ConstraintViolation


async def create_customer(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    phone: str | None = None,
    address: str | None = None,
) -> Customer:
    customer = Customer(
        name=name.strip(),
        email=email.lower().strip(),
        phone=phone,
        address=address,
    )
    db.add(customer)
    with translate_db_errors(entity="Customer", message="A customer with this e-mail already exists"):
        await db.flush()
    return customer


async def get_customer(db: AsyncSession, customer_id: int) -> Customer:
    return await require(db, Customer, customer_id)


async def list_customers(
    db: AsyncSession,
    *,
    offset: int = 0,
    limit: int = 50,
) -> list[Customer]:
    stmt = select(Customer).order_by(Customer.id).offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_customer(db: AsyncSession, customer_id: int, **fields: object) -> Customer:
    """Update contact details; id never changes."""
    customer = await require(db, Customer, customer_id)
    for key, value in clean_fields(fields, {"name", "email", "phone", "address"}).items():
        if key == "email" and isinstance(value, str):
            value = value.lower().strip()
        setattr(customer, key, value)
    with translate_db_errors(entity="Customer", entity_id=customer_id):
        await db.flush()
    return customer


async def delete_customer(db: AsyncSession, customer_id: int) -> None:
    """Hard-delete a customer that holds no policies."""
    customer = await require(db, Customer, customer_id)
    if await count_where(db, Policy, Policy.customer_id == customer_id):
        raise ConstraintViolation(
            f"Customer {customer_id} still holds policies",
            entity="Customer",
            entity_id=customer_id,
        )
    await db.delete(customer)
    await db.flush()
