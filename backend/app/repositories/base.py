"""Helpers shared by every repository module."""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.rules.errors import ReferenceNotFound

ModelT = TypeVar("ModelT")


async def require(db: AsyncSession, model: type[ModelT], entity_id: Any) -> ModelT:
    """Fetch by primary key or raise ReferenceNotFound."""
    instance = await db.get(model, entity_id)
    if instance is None:
        raise ReferenceNotFound(
            f"{model.__name__} {entity_id} does not exist",
            entity=model.__name__,
            entity_id=entity_id,
        )
    return instance


async def count_where(db: AsyncSession, model: type, *criteria: Any) -> int:
    """SELECT count(*) FROM model WHERE criteria."""
    stmt = select(func.count()).select_from(model).where(*criteria)
    return int((await db.execute(stmt)).scalar_one())


def clean_fields(fields: dict[str, Any], allowed: set[str]) -> dict[str, Any]:
    """Keep allowed keys whose value is not None."""
    return {k: v for k, v in fields.items() if k in allowed and v is not None}
