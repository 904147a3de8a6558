"""Batch trigger and run-history schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class BatchTriggerResponse(BaseModel):
    message: str
    run_id: str
    job_name: str
    celery_task_id: str | None
    status: str


class BatchStopResponse(BaseModel):
    message: str
    job_name: str


class BatchRunRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_name: str
    business_date: date
    actor: str
    status: str
    selected: int | None
    succeeded: int | None
    failed: int | None
    stopped: bool
    started_at: datetime | None
    completed_at: datetime | None
    duration_ms: int | None
    error_message: str | None
    failures: list[dict[str, Any]] | None
    created_ids: list[int] | None
