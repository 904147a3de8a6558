"""
Agent repository.

Commission is not writable here; it only moves through CommissionAccrual.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.agent import Agent
from app.db.transaction import translate_db_errors
from app.repositories.base import clean_fields, require


async def create_agent(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    phone: str | None = None,
) -> Agent:
    agent = Agent(name=name.strip(), email=email.lower().strip(), phone=phone)
    db.add(agent)
    with translate_db_errors(entity="Agent", message="An agent with this e-mail already exists"):
        await db.flush()
    return agent


async def get_agent(db: AsyncSession, agent_id: int) -> Agent:
    return await require(db, Agent, agent_id)


async def list_agents(db: AsyncSession, *, offset: int = 0, limit: int = 50) -> list[Agent]:
    stmt = select(Agent).order_by(Agent.id).offset(offset).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_agent(db: AsyncSession, agent_id: int, **fields: object) -> Agent:
    agent = await require(db, Agent, agent_id)
    for key, value in clean_fields(fields, {"name", "email", "phone"}).items():
        if key == "email" and isinstance(value, str):
            value = value.lower().strip()
        setattr(agent, key, value)
    with translate_db_errors(entity="Agent", entity_id=agent_id):
        await db.flush()
    return agent
