"""
BatchRun — one row per batch job invocation (renewal, billing).

Holds the per-run summary: counters, timing, and the list of items that
failed together with the reason, so a partially failed run can be
inspected without digging through worker logs.
"""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, Text, Uuid

from app.db.models.base import Base, generate_uuid, utcnow


class BatchRun(Base):
    """One row per batch execution."""

    __tablename__ = "batch_runs"

    id = Column(Uuid, primary_key=True, default=generate_uuid)

    # ── Job ──────────────────────────────────
    job_name = Column(String(50), nullable=False, index=True)
    business_date = Column(Date, nullable=False, index=True)
    actor = Column(String(320), nullable=False)

    # ── Status / Progress ────────────────────
    status = Column(String(50), nullable=False, default="PENDING", index=True)
    selected = Column(Integer, default=0)
    succeeded = Column(Integer, default=0)
    failed = Column(Integer, default=0)
    stopped = Column(Boolean, default=False, nullable=False)

    # ── Timing (UTC) ─────────────────────────
    started_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)

    # ── Error ─────────────────────────────────
    error_message = Column(Text, nullable=True)

    # ── Per-item outcome ──────────────────────
    # [{"item_id": 12, "error": "...", "error_type": "ConstraintViolation"}, ...]
    failures = Column(JSON, default=list)
    # Ids created by the run (successor policies / payments)
    created_ids = Column(JSON, default=list)

    # ── Audit timestamps ─────────────────────
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<BatchRun {self.id} job={self.job_name} status={self.status} ok={self.succeeded}/{self.selected}>"
