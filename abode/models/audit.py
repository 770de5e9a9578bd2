"""
Audit Models for Abode

Every mutation and every authentication step is logged as an audit event.
This provides:
1. Traceability of all writes across collections
2. Debugging information when a cascade rule rejects a write
3. A record of who was logged in when

DESIGN DECISION: Audit events go to the structured log only. They are not
stored as a sixth collection.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from abode.models.entities import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Entity persistence
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    ENTITY_NOT_FOUND = "entity_not_found"

    # Cross-entity rules
    CASCADE_DELETED = "cascade_deleted"
    CASCADE_REJECTED = "cascade_rejected"
    CASCADE_DECLINED = "cascade_declined"

    # Authentication
    USER_REGISTERED = "user_registered"
    REGISTRATION_FAILED = "registration_failed"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    PROFILE_UPDATED = "profile_updated"
    SESSION_RESTORED = "session_restored"
    SESSION_DROPPED = "session_dropped"

    # System events
    STORAGE_FAILED = "storage_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection the entity lives in (e.g., 'tenants')"
    )
    entity_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a tenant delete and its payments)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("tenants", tenant.id)
        event = AuditEventBuilder.login_failed("alice")
    """

    @staticmethod
    def entity_created(
        collection: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=collection,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Record added to {collection}",
        )

    @staticmethod
    def entity_updated(
        collection: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=collection,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Record updated in {collection}",
        )

    @staticmethod
    def entity_deleted(
        collection: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=collection,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Record deleted from {collection}",
        )

    @staticmethod
    def entity_not_found(
        collection: str,
        entity_id: str,
        operation: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=collection,
            entity_id=entity_id,
            description=f"{operation.capitalize()} skipped: no record with this id in {collection}",
            details={"operation": operation},
        )

    @staticmethod
    def cascade_deleted(
        tenant_id: str,
        payment_ids: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASCADE_DELETED,
            entity_type="tenants",
            entity_id=tenant_id,
            correlation_id=correlation_id,
            description=f"Removed {len(payment_ids)} payments of deleted tenant",
            details={"payment_ids": payment_ids},
        )

    @staticmethod
    def cascade_declined(
        tenant_id: str,
        payment_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASCADE_DECLINED,
            entity_type="tenants",
            entity_id=tenant_id,
            description="Tenant deletion cancelled at confirmation",
            details={"payment_count": payment_count},
            is_user_action=True,
        )

    @staticmethod
    def cascade_rejected(
        collection: str,
        entity_id: str,
        rule: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CASCADE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=collection,
            entity_id=entity_id,
            description=f"Write rejected: {rule}",
            error_message=reason,
            details={"rule": rule},
        )

    @staticmethod
    def user_registered(user_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="users",
            entity_id=user_id,
            description=f"User registered: {username}",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def registration_failed(username: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="users",
            description=f"Registration failed for: {username}",
            error_message=reason,
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(user_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="users",
            entity_id=user_id,
            description=f"Login successful for: {username}",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def login_failed(username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="users",
            description="Login failed: invalid credentials",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def logout(username: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGOUT,
            entity_type="users",
            description=f"Logged out: {username or 'anonymous'}",
            details={"username": username},
            is_user_action=True,
        )

    @staticmethod
    def profile_updated(
        user_id: str,
        password_changed: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            entity_type="users",
            entity_id=user_id,
            description="User profile updated",
            details={"password_changed": password_changed},
            is_user_action=True,
        )

    @staticmethod
    def session_restored(user_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_RESTORED,
            entity_type="users",
            entity_id=user_id,
            description=f"Session restored for: {username}",
        )

    @staticmethod
    def session_dropped(username: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type="users",
            description=f"Persisted session for {username} discarded",
            error_message=reason,
            details={"username": username},
        )

    @staticmethod
    def storage_failed(
        collection: str,
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=collection,
            description=f"Storage {operation} failed on {collection}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
