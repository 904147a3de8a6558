"""Shared constants and enums used across the application."""

from enum import StrEnum


class UserRole(StrEnum):
    """Application roles for authenticated back-office users."""

    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"
    VIEWER = "VIEWER"


class ClaimStatus(StrEnum):
    """Lifecycle status of a claim."""

    APPROVED = "Approved"
    PENDING = "Pending"
    REJECTED = "Rejected"


class PolicyMarker(StrEnum):
    """System values of a policy's approval marker.

    Any other non-null value is the identity of the issuer who approved it.
    """

    EXPIRED = "Expired"
    AUTO_RENEWED = "Auto-Renewed"


class PaymentMethod(StrEnum):
    """Accepted payment methods."""

    AUTO_DEBIT = "Auto-Debit"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"
    CASH = "Cash"
    CHEQUE = "Cheque"


class AuditOperation(StrEnum):
    """Kind of policy mutation recorded in the audit trail."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class BatchJobName(StrEnum):
    """Registered batch jobs."""

    RENEWAL = "renewal"
    BILLING = "billing"


class BatchStatus(StrEnum):
    """Overall status of a batch run."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    PARTIALLY_COMPLETED = "PARTIALLY_COMPLETED"
    FAILED = "FAILED"
    STOPPED = "STOPPED"


class ItemStatus(StrEnum):
    """Outcome of one item within a batch run."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
