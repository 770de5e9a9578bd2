"""
Data Models Package

This package contains all Pydantic models used in Abode.
Every record written to a collection must conform to these schemas.
"""

from abode.models.entities import (
    ALL_ROOMS,
    CollectionName,
    ContractStatus,
    Draft,
    LatestPaymentStatus,
    MonthlyRentSummary,
    Payment,
    PaymentDraft,
    PaymentStatus,
    Property,
    PropertyDraft,
    StoredRecord,
    Tenant,
    TenantDraft,
    Todo,
    TodoDraft,
    User,
    UserDraft,
    ValidationIssue,
    ValidationResult,
    new_id,
)
from abode.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "ALL_ROOMS",
    "CollectionName",
    "ContractStatus",
    "LatestPaymentStatus",
    "MonthlyRentSummary",
    "Payment",
    "PaymentStatus",
    "Property",
    "StoredRecord",
    "Tenant",
    "Todo",
    "User",
    "new_id",
    # Drafts and validation
    "Draft",
    "PaymentDraft",
    "PropertyDraft",
    "TenantDraft",
    "TodoDraft",
    "UserDraft",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
