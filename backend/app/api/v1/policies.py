"""
Policy endpoints.

Every mutation runs in its own retried transaction
(run_in_transaction), so the policy row, the agent's commission and the
audit record commit or roll back as one unit.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_current_user, get_db, get_rule_context, get_session_factory, require_writer
from app.api.schemas.policies import AuditRecordRead, PolicyCreate, PolicyRead, PolicyUpdate
from app.core.constants import AuditOperation
from app.db.transaction import run_in_transaction
from app.repositories import policies as policy_repository
from app.rules.context import RuleContext

router = APIRouter(
    prefix="/policies",
    tags=["Policies"],
    dependencies=[Depends(get_current_user)],
)


@router.post(
    "/",
    response_model=PolicyRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_writer)],
)
async def create_policy(
    payload: PolicyCreate,
    ctx: RuleContext = Depends(get_rule_context),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PolicyRead:
    async def operation(session: AsyncSession) -> PolicyRead:
        policy = await policy_repository.create_policy(session, ctx, **payload.model_dump())
        return PolicyRead.model_validate(policy)

    return await run_in_transaction(session_factory, operation)


@router.get("/", response_model=list[PolicyRead])
async def list_policies(
    customer_id: int | None = None,
    agent_id: int | None = None,
    approval_marker: str | None = None,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> list[PolicyRead]:
    policies = await policy_repository.list_policies(
        db,
        customer_id=customer_id,
        agent_id=agent_id,
        approval_marker=approval_marker,
        offset=offset,
        limit=limit,
    )
    return [PolicyRead.model_validate(p) for p in policies]


@router.get("/{policy_id}", response_model=PolicyRead)
async def get_policy(policy_id: int, db: AsyncSession = Depends(get_db)) -> PolicyRead:
    return PolicyRead.model_validate(await policy_repository.get_policy(db, policy_id))


@router.patch("/{policy_id}", response_model=PolicyRead, dependencies=[Depends(require_writer)])
async def update_policy(
    policy_id: int,
    payload: PolicyUpdate,
    ctx: RuleContext = Depends(get_rule_context),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PolicyRead:
    async def operation(session: AsyncSession) -> PolicyRead:
        policy = await policy_repository.update_policy(
            session, ctx, policy_id, **payload.model_dump(exclude_unset=True)
        )
        return PolicyRead.model_validate(policy)

    return await run_in_transaction(session_factory, operation)


@router.delete(
    "/{policy_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_writer)],
)
async def delete_policy(
    policy_id: int,
    ctx: RuleContext = Depends(get_rule_context),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> Response:
    async def operation(session: AsyncSession) -> None:
        await policy_repository.delete_policy(session, ctx, policy_id)

    await run_in_transaction(session_factory, operation)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{policy_id}/audit", response_model=list[AuditRecordRead])
async def get_policy_audit(
    policy_id: int,
    operation: AuditOperation | None = None,
    limit: int = 100,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> list[AuditRecordRead]:
    """Audit trail of one policy, oldest first.  Survives the policy's deletion."""
    records = await policy_repository.list_audit_records(
        db, policy_id=policy_id, operation=operation, offset=offset, limit=limit
    )
    return [AuditRecordRead.model_validate(r) for r in records]
