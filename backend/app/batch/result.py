"""
Batch results — per-item outcomes and the run summary.

``BatchResult`` is what the runner returns and what gets written to the
``batch_runs`` table.  Only failed items are persisted in detail; the
successful ones contribute their created id.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from app.core.constants import BatchStatus, ItemStatus


@dataclass
class ItemResult:
    """Outcome of processing one selected item."""

    item_id: int
    status: str                     # ItemStatus value
    created_id: int | None = None
    error: str | None = None
    error_type: str | None = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "status": self.status,
            "created_id": self.created_id,
            "error": self.error,
            "error_type": self.error_type,
            "duration_ms": self.duration_ms,
        }


@dataclass
class BatchResult:
    """Final outcome of one batch run."""

    job_name: str
    business_date: date
    actor: str
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: str = BatchStatus.RUNNING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    selected: int = 0
    stopped: bool = False
    items: list[ItemResult] = field(default_factory=list)
    error: str | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for i in self.items if i.status == ItemStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for i in self.items if i.status == ItemStatus.FAILED)

    @property
    def failures(self) -> list[dict[str, Any]]:
        return [
            {"item_id": i.item_id, "error": i.error, "error_type": i.error_type}
            for i in self.items
            if i.status == ItemStatus.FAILED
        ]

    @property
    def created_ids(self) -> list[int]:
        return [i.created_id for i in self.items if i.created_id is not None]

    def finalise(self) -> None:
        """Derive the overall status from the item outcomes."""
        if self.error is not None:
            self.status = BatchStatus.FAILED
        elif self.stopped:
            self.status = BatchStatus.STOPPED
        elif self.failed == 0:
            self.status = BatchStatus.COMPLETED
        elif self.succeeded == 0:
            self.status = BatchStatus.FAILED
        else:
            self.status = BatchStatus.PARTIALLY_COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "job_name": self.job_name,
            "business_date": self.business_date.isoformat(),
            "actor": self.actor,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "selected": self.selected,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "stopped": self.stopped,
            "failures": self.failures,
            "created_ids": self.created_ids,
            "error": self.error,
        }
