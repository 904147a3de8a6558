"""Agent endpoints.  Commission is read-only over the API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, require_writer
from app.api.schemas.customers import AgentCreate, AgentRead, AgentUpdate
from app.repositories import agents as agent_repository

router = APIRouter(
    prefix="/agents",
    tags=["Agents"],
    dependencies=[Depends(get_current_user)],
)


@router.post(
    "/",
    response_model=AgentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_writer)],
)
async def create_agent(payload: AgentCreate, db: AsyncSession = Depends(get_db)) -> AgentRead:
    agent = await agent_repository.create_agent(db, **payload.model_dump())
    return AgentRead.model_validate(agent)


@router.get("/", response_model=list[AgentRead])
async def list_agents(
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> list[AgentRead]:
    agents = await agent_repository.list_agents(db, offset=offset, limit=limit)
    return [AgentRead.model_validate(a) for a in agents]


@router.get("/{agent_id}", response_model=AgentRead)
async def get_agent(agent_id: int, db: AsyncSession = Depends(get_db)) -> AgentRead:
    return AgentRead.model_validate(await agent_repository.get_agent(db, agent_id))


@router.patch("/{agent_id}", response_model=AgentRead, dependencies=[Depends(require_writer)])
async def update_agent(
    agent_id: int,
    payload: AgentUpdate,
    db: AsyncSession = Depends(get_db),
) -> AgentRead:
    agent = await agent_repository.update_agent(db, agent_id, **payload.model_dump(exclude_unset=True))
    return AgentRead.model_validate(agent)
