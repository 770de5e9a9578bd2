"""
Cascade Coordinator

DESIGN DECISION: The store has no foreign keys, so cross-entity rules live
here and run BEFORE the guarded write touches its own collection:

- Tenant writes need a live (existing, unarchived) property
- Payment writes need a tenant that is not effectively archived
- A tenant's own archive flag cannot be toggled while its property is archived
- Deleting a tenant deletes its payments first (hard boundary)
- Deleting a property does NOT touch its tenants (soft boundary); they
  become effectively archived instead

A rejected write raises before anything is written.
"""

from typing import Optional

import structlog

from abode.audit import AuditLogger, create_correlation_id
from abode.models.audit import AuditEventBuilder
from abode.models.entities import Payment, Property, Tenant, ValidationIssue, ValidationResult
from abode.services.storage.interface import (
    CollectionStoreInterface,
    PropertyArchivedError,
    TenantArchivedError,
)
from abode.services.storage.repositories import (
    ConfirmCallback,
    PaymentRepository,
    PropertyRepository,
    TenantRepository,
)
from abode.status import StatusEngine
from abode.validation.validator import EntityValidationError


class CascadeCoordinator:
    """
    Enforces cross-collection rules.

    Uses its own unguarded repositories on the same store, so the guarded
    repositories can call back into it without recursion.
    """

    def __init__(
        self,
        store: CollectionStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._properties = PropertyRepository(store, audit_logger)
        self._tenants = TenantRepository(store, audit_logger=audit_logger)
        self._payments = PaymentRepository(store, audit_logger=audit_logger)
        self._audit = audit_logger
        self._logger = structlog.get_logger("abode.cascade")

    async def _reject(self, collection: str, entity_id: str, rule: str, error: Exception) -> None:
        self._logger.warning(
            "write_rejected",
            collection=collection,
            record_id=entity_id,
            rule=rule,
            reason=str(error),
        )
        if self._audit:
            await self._audit.log_cascade_rejected(collection, entity_id, rule, str(error))

    async def _live_property(self, tenant: Tenant) -> Property:
        """The tenant's property, or PropertyArchivedError if archived or gone."""
        engine = StatusEngine(properties=await self._properties.list())
        prop = engine.resolve_property(tenant.property_id)
        if prop is None or prop.archived:
            error = PropertyArchivedError(tenant.id, tenant.property_id)
            await self._reject("tenants", tenant.id, "property_archived", error)
            raise error
        return prop

    async def check_tenant_write(self, tenant: Tenant) -> None:
        """
        Validate a tenant create/update against its property.

        Raises:
            PropertyArchivedError: Property archived or missing
            EntityValidationError: Floor or room not in the property
        """
        prop = await self._live_property(tenant)

        if prop.floor_count and tenant.floor > prop.floor_count:
            await self._invalid_placement(
                tenant,
                "floor",
                f"Floor {tenant.floor} does not exist in {prop.name} ({prop.floor_count} floors)",
            )
        if not prop.accepts_room(tenant.room):
            await self._invalid_placement(
                tenant,
                "room",
                f"{tenant.room} does not exist in {prop.name} ({prop.room_count} rooms)",
            )

    async def _invalid_placement(self, tenant: Tenant, field: str, message: str) -> None:
        error = EntityValidationError(ValidationResult(
            entity_type="tenant",
            is_valid=False,
            issues=[ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=message,
                severity="error",
            )],
        ))
        await self._reject("tenants", tenant.id, f"{field}_out_of_range", error)
        raise error

    async def check_payment_write(self, payment: Payment) -> None:
        """
        Validate a payment create/update against its tenant.

        Raises:
            TenantArchivedError: Tenant archived, in an archived or missing
                property, or missing itself
        """
        engine = StatusEngine(
            properties=await self._properties.list(),
            tenants=await self._tenants.list(),
        )
        if engine.tenant_id_effectively_archived(payment.tenant_id):
            error = TenantArchivedError(payment.id, payment.tenant_id)
            await self._reject("payments", payment.id, "tenant_archived", error)
            raise error

    async def set_tenant_archived(self, tenant_id: str, archived: bool) -> Optional[Tenant]:
        """
        Toggle a tenant's own archived flag.

        The property's archived state dominates: while it is archived the
        tenant flag cannot be changed in either direction. A tenant whose
        property was deleted may still be archived, but never unarchived.
        """
        tenant = await self._tenants.get(tenant_id)
        if tenant is None:
            self._logger.warning("record_not_found", collection="tenants", record_id=tenant_id)
            return None

        engine = StatusEngine(properties=await self._properties.list())
        if not (archived and engine.resolve_property(tenant.property_id) is None):
            await self._live_property(tenant)

        updated = tenant.model_copy(update={"archived": archived})
        await self._tenants.update(updated)
        return updated

    async def delete_tenant(
        self,
        tenant_id: str,
        confirm: Optional[ConfirmCallback] = None,
    ) -> bool:
        """
        Delete a tenant's payments, then the tenant.

        Args:
            tenant_id: Tenant to delete
            confirm: Called with the number of payments to remove; a False
                answer cancels the deletion with nothing changed

        Returns:
            True if the tenant record was removed
        """
        payments = await self._payments.for_tenant(tenant_id)
        if confirm is not None and not confirm(len(payments)):
            if self._audit:
                await self._audit.log(AuditEventBuilder.cascade_declined(tenant_id, len(payments)))
            return False

        correlation_id = create_correlation_id()
        removed = await self._payments.delete_for_tenant(tenant_id, correlation_id)
        if removed and self._audit:
            await self._audit.log(
                AuditEventBuilder.cascade_deleted(tenant_id, removed, correlation_id)
            )

        return await self._tenants.remove(tenant_id, correlation_id)
