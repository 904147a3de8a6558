"""
Seed development data: users, agents, customers, policies, claims, payments.

Run: python -m scripts.seed_data  (from backend/)

Policies go through the repository so commission and audit rows are
produced exactly as they would be over the API.
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

from app.core.constants import PaymentMethod
from app.core.logging import get_logger, setup_logging
from app.db.session import async_session
from app.repositories.agents import create_agent
from app.repositories.claims import create_claim
from app.repositories.customers import create_customer
from app.repositories.payments import create_payment
from app.repositories.policies import create_policy
from app.repositories.users import create_user
from app.rules.context import RuleContext

logger = get_logger("seed")

SEED_USERS = [
    {
        "email": "admin@policy-rules.local",
        "password": "admin123",  # Change in production!
        "full_name": "System Admin",
        "role": "ADMIN",
    },
    {
        "email": "operator@policy-rules.local",
        "password": "operator123",
        "full_name": "Back-office Operator",
        "role": "OPERATOR",
    },
    {
        "email": "viewer@policy-rules.local",
        "password": "viewer123",
        "full_name": "Read-only Viewer",
        "role": "VIEWER",
    },
]

SEED_AGENTS = [
    {"name": "Asha Menon", "email": "asha.menon@agency.local", "phone": "+91-98450-00001"},
    {"name": "Daniel Ortiz", "email": "daniel.ortiz@agency.local", "phone": "+34-600-000-002"},
]

SEED_CUSTOMERS = [
    {"name": "Ravi Kumar", "email": "ravi.kumar@example.com", "address": "12 MG Road, Bengaluru"},
    {"name": "Lena Fischer", "email": "lena.fischer@example.com", "address": "Hauptstr. 5, Berlin"},
    {"name": "Tom Okafor", "email": "tom.okafor@example.com", "address": "3 Marina, Lagos"},
]


async def seed():
    setup_logging()
    ctx = RuleContext.system(actor="seed@policy-rules.local")
    today = ctx.today

    async with async_session() as session:
        for data in SEED_USERS:
            user = await create_user(db=session, **data)
            logger.info("Created user", email=user.email, role=user.role)

        agents = [await create_agent(session, **data) for data in SEED_AGENTS]
        customers = [await create_customer(session, **data) for data in SEED_CUSTOMERS]

        # Due for renewal today: term ended, premium paid, one approved claim
        due = await create_policy(
            session, ctx,
            policy_type="Health",
            coverage_amount=Decimal("500000.00"),
            premium_amount=Decimal("1200.00"),
            start_date=today - timedelta(days=365),
            end_date=today,
            customer_id=customers[0].id,
            agent_id=agents[0].id,
            approval_marker="underwriter@policy-rules.local",
        )
        await create_payment(
            session, ctx,
            policy_id=due.id,
            amount=Decimal("1200.00"),
            payment_method=PaymentMethod.BANK_TRANSFER.value,
            payment_date=today - timedelta(days=300),
        )
        await create_claim(
            session, ctx,
            policy_id=due.id,
            claim_amount=Decimal("2500.00"),
            incident_description="Outpatient treatment, March",
            claim_date=today - timedelta(days=120),
        )

        # Blocked from renewal: one large claim still pending
        blocked = await create_policy(
            session, ctx,
            policy_type="Motor",
            coverage_amount=Decimal("80000.00"),
            premium_amount=Decimal("900.00"),
            start_date=today - timedelta(days=365),
            end_date=today - timedelta(days=1),
            customer_id=customers[1].id,
            agent_id=agents[1].id,
        )
        await create_payment(
            session, ctx,
            policy_id=blocked.id,
            amount=Decimal("900.00"),
            payment_method=PaymentMethod.CARD.value,
            payment_date=today - timedelta(days=200),
        )
        await create_claim(
            session, ctx,
            policy_id=blocked.id,
            claim_amount=Decimal("15000.00"),
            incident_description="Collision on ring road",
            claim_date=today - timedelta(days=30),
        )

        # Active policy billed by the recurring biller
        await create_policy(
            session, ctx,
            policy_type="Home",
            coverage_amount=Decimal("250000.00"),
            premium_amount=Decimal("45.00"),
            start_date=date(today.year, 1, 1),
            end_date=date(today.year, 12, 31),
            customer_id=customers[2].id,
        )

        await session.commit()

    logger.info(
        "Seed complete",
        users=len(SEED_USERS),
        agents=len(SEED_AGENTS),
        customers=len(SEED_CUSTOMERS),
        policies=3,
    )


if __name__ == "__main__":
    asyncio.run(seed())
