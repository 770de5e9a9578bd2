"""
Audit Logger

DESIGN DECISION: Every write to a collection and every auth step is logged.
This provides:
1. Traceability of cascades across collections
2. Debugging capability when a write is rejected
3. A history of logins for the single local user

The audit logger:
- Is async so callers await it in the same flow as storage calls
- Never raises into the caller (a broken log must not break a write)
- Supports correlation IDs to tie a cascade to its parent operation
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from abode.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(log_level: str = "INFO") -> None:
    """Configure stdlib logging and structlog for JSON output."""
    level = getattr(logging, log_level)
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Events are written to the structured local log. Recent events are also
    kept in memory so a UI can show them without reading the log file.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("abode.audit")
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        try:
            log_dict = event.to_log_dict()

            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Logging must not break the write it describes
            logging.getLogger(__name__).error("audit log failed: %s", e)
            return False

        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[0]
        return True

    async def log_entity_created(
        self,
        collection: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a record appended to a collection."""
        await self.log(AuditEventBuilder.entity_created(
            collection=collection,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_entity_updated(
        self,
        collection: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a record replaced in a collection."""
        await self.log(AuditEventBuilder.entity_updated(
            collection=collection,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_entity_deleted(
        self,
        collection: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a record removed from a collection."""
        await self.log(AuditEventBuilder.entity_deleted(
            collection=collection,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_entity_not_found(
        self,
        collection: str,
        entity_id: str,
        operation: str,
    ) -> None:
        """Log an update/delete that matched no record."""
        await self.log(AuditEventBuilder.entity_not_found(
            collection=collection,
            entity_id=entity_id,
            operation=operation,
        ))

    async def log_cascade_rejected(
        self,
        collection: str,
        entity_id: str,
        rule: str,
        reason: str,
    ) -> None:
        """Log a write refused by a cross-entity rule."""
        await self.log(AuditEventBuilder.cascade_rejected(
            collection=collection,
            entity_id=entity_id,
            rule=rule,
            reason=reason,
        ))

    async def log_storage_failed(
        self,
        collection: str,
        operation: str,
        error_message: str,
    ) -> None:
        """Log a storage read/write that raised."""
        await self.log(AuditEventBuilder.storage_failed(
            collection=collection,
            operation=operation,
            error_message=error_message,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-collection operation (e.g. tenant
    deletion) and pass it through the cascaded writes.
    """
    return uuid4()
