"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.

When adding a new model:
    1. Create `app/db/models/<table_name>.py`
    2. Import it here
"""

from app.db.models.base import Base
from app.db.models.user import User
from app.db.models.customer import Customer
from app.db.models.agent import Agent
from app.db.models.policy import Policy
from app.db.models.claim import Claim
from app.db.models.payment import Payment
from app.db.models.audit_policy import AuditPolicyRecord
from app.db.models.batch_run import BatchRun

__all__ = [
    "Base",
    "User",
    "Customer",
    "Agent",
    "Policy",
    "Claim",
    "Payment",
    "AuditPolicyRecord",
    "BatchRun",
]
