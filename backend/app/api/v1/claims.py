"""
Claim endpoints.

Status is assigned on insert by ClaimClassifier; a Pending claim is
adjudicated through /approve or /reject.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, get_rule_context, require_writer
from app.api.schemas.policies import ClaimCreate, ClaimRead
from app.core.constants import ClaimStatus
from app.repositories import claims as claim_repository
from app.rules.context import RuleContext

router = APIRouter(
    prefix="/claims",
    tags=["Claims"],
    dependencies=[Depends(get_current_user)],
)


@router.post(
    "/",
    response_model=ClaimRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_writer)],
)
async def create_claim(
    payload: ClaimCreate,
    ctx: RuleContext = Depends(get_rule_context),
    db: AsyncSession = Depends(get_db),
) -> ClaimRead:
    claim = await claim_repository.create_claim(db, ctx, **payload.model_dump())
    return ClaimRead.model_validate(claim)


@router.get("/", response_model=list[ClaimRead])
async def list_claims(
    policy_id: int | None = None,
    claim_status: ClaimStatus | None = None,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
) -> list[ClaimRead]:
    claims = await claim_repository.list_claims(
        db, policy_id=policy_id, status=claim_status, offset=offset, limit=limit
    )
    return [ClaimRead.model_validate(c) for c in claims]


@router.get("/{claim_id}", response_model=ClaimRead)
async def get_claim(claim_id: int, db: AsyncSession = Depends(get_db)) -> ClaimRead:
    return ClaimRead.model_validate(await claim_repository.get_claim(db, claim_id))


@router.post("/{claim_id}/approve", response_model=ClaimRead, dependencies=[Depends(require_writer)])
async def approve_claim(
    claim_id: int,
    ctx: RuleContext = Depends(get_rule_context),
    db: AsyncSession = Depends(get_db),
) -> ClaimRead:
    claim = await claim_repository.set_claim_status(db, ctx, claim_id, ClaimStatus.APPROVED)
    return ClaimRead.model_validate(claim)


@router.post("/{claim_id}/reject", response_model=ClaimRead, dependencies=[Depends(require_writer)])
async def reject_claim(
    claim_id: int,
    ctx: RuleContext = Depends(get_rule_context),
    db: AsyncSession = Depends(get_db),
) -> ClaimRead:
    claim = await claim_repository.set_claim_status(db, ctx, claim_id, ClaimStatus.REJECTED)
    return ClaimRead.model_validate(claim)
