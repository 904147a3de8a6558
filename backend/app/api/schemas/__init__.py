"""API schema package."""

from app.api.schemas.auth import CurrentUserResponse, LoginRequest, TokenResponse
from app.api.schemas.batch import BatchRunRead, BatchStopResponse, BatchTriggerResponse
from app.api.schemas.customers import (
    AgentCreate,
    AgentRead,
    AgentUpdate,
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
)
from app.api.schemas.policies import (
    AuditRecordRead,
    ClaimCreate,
    ClaimRead,
    PaymentCreate,
    PaymentRead,
    PolicyCreate,
    PolicyRead,
    PolicyUpdate,
)

__all__ = [
    "LoginRequest",
    "TokenResponse",
    "CurrentUserResponse",
    "CustomerCreate",
    "CustomerUpdate",
    "CustomerRead",
    "AgentCreate",
    "AgentUpdate",
    "AgentRead",
    "PolicyCreate",
    "PolicyUpdate",
    "PolicyRead",
    "AuditRecordRead",
    "ClaimCreate",
    "ClaimRead",
    "PaymentCreate",
    "PaymentRead",
    "BatchTriggerResponse",
    "BatchStopResponse",
    "BatchRunRead",
]
