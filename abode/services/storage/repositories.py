"""
Entity Repositories

Typed CRUD per entity on top of the collection store.

DESIGN DECISION: Every write is a full read-modify-write of ONE collection:
read the whole list, change it in Python, write the whole list back.
There is no lock. Two concurrent writes to the same collection can lose
one of them (the later set wins). That is accepted for a single-user tool.
Between the awaited read and the write there is no other await, which keeps
the window small.

Records that fail to parse are skipped when listing but are written back
untouched, so one bad record never destroys its neighbours.
"""

from typing import TYPE_CHECKING, Callable, ClassVar, Generic, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import ValidationError

from abode.models.entities import (
    CollectionName,
    Payment,
    Property,
    StoredRecord,
    Tenant,
    Todo,
    User,
)
from abode.services.storage.interface import (
    CollectionStoreInterface,
    DuplicateUsernameError,
    RawRecord,
    StorageError,
    StorageUnavailableError,
)

if TYPE_CHECKING:
    from abode.audit import AuditLogger
    from abode.validation.cascade import CascadeCoordinator


EntityT = TypeVar("EntityT", bound=StoredRecord)

# Called with the number of payments a tenant deletion would remove
ConfirmCallback = Callable[[int], bool]


def record_id(raw: RawRecord) -> Optional[str]:
    """Id of a raw record, None for anything that is not a record."""
    if isinstance(raw, dict):
        value = raw.get("id")
        return str(value) if value is not None else None
    return None


class CollectionRepository(Generic[EntityT]):
    """
    CRUD over one named collection.

    Subclasses set `collection` and `model`, and may override the
    `_before_add` / `_before_update` hooks to validate against other
    collections before the write starts.
    """

    collection: ClassVar[CollectionName]
    model: ClassVar[type]

    def __init__(
        self,
        store: CollectionStoreInterface,
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._store = store
        self._audit = audit_logger
        self._logger = structlog.get_logger("abode.repositories")

    @property
    def name(self) -> str:
        return self.collection.value

    # -------------------------------------------------------------------------
    # Raw access
    # -------------------------------------------------------------------------

    async def _load_raw(self) -> list[RawRecord]:
        try:
            return await self._store.get(self.name)
        except StorageUnavailableError:
            raise
        except StorageError as e:
            await self._storage_failed("read", e)
            raise

    async def _save_raw(self, records: list[RawRecord]) -> None:
        try:
            await self._store.set(self.name, records)
        except StorageUnavailableError:
            raise
        except StorageError as e:
            await self._storage_failed("write", e)
            raise

    async def _storage_failed(self, operation: str, error: Exception) -> None:
        self._logger.error(
            "storage_operation_failed",
            collection=self.name,
            operation=operation,
            error=str(error),
        )
        if self._audit:
            await self._audit.log_storage_failed(self.name, operation, str(error))

    def _parse(self, raw: RawRecord) -> Optional[EntityT]:
        if not isinstance(raw, dict):
            self._logger.warning("record_skipped", collection=self.name, reason="not an object")
            return None
        try:
            return self.model.from_record(raw)
        except ValidationError as e:
            self._logger.warning(
                "record_skipped",
                collection=self.name,
                record_id=record_id(raw),
                reason=str(e),
            )
            return None

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    async def _before_add(self, entity: EntityT) -> None:
        """Cross-collection checks; runs before this collection is read."""

    async def _before_update(self, entity: EntityT) -> None:
        """Cross-collection checks; runs before this collection is read."""

    def _check_add(self, records: list[RawRecord], entity: EntityT) -> None:
        """Same-collection checks on the snapshot about to be rewritten."""

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def list(self) -> list[EntityT]:
        """All parseable records in collection order."""
        records = await self._load_raw()
        parsed = (self._parse(raw) for raw in records)
        return [entity for entity in parsed if entity is not None]

    async def get(self, entity_id: str) -> Optional[EntityT]:
        """First record with this id, or None."""
        for entity in await self.list():
            if entity.id == entity_id:
                return entity
        return None

    async def add(self, entity: EntityT) -> EntityT:
        """Append a record. The id is trusted to be fresh."""
        await self._before_add(entity)

        records = await self._load_raw()
        self._check_add(records, entity)
        records.append(entity.to_record())
        await self._save_raw(records)

        if self._audit:
            await self._audit.log_entity_created(self.name, entity.id)
        return entity

    async def update(self, entity: EntityT) -> bool:
        """
        Replace the record with the same id.

        Returns False (and logs a warning) if no record has that id.
        """
        await self._before_update(entity)

        records = await self._load_raw()
        index = next(
            (i for i, raw in enumerate(records) if record_id(raw) == entity.id),
            None,
        )
        if index is None:
            await self._not_found(entity.id, "update")
            return False

        records[index] = entity.to_record()
        await self._save_raw(records)

        if self._audit:
            await self._audit.log_entity_updated(self.name, entity.id)
        return True

    async def delete(self, entity_id: str) -> bool:
        """
        Remove every record with this id.

        Returns False (and logs a warning) if no record has that id.
        """
        return await self.remove(entity_id)

    async def remove(
        self,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete by id, never cascading."""
        records = await self._load_raw()
        remaining = [raw for raw in records if record_id(raw) != entity_id]
        if len(remaining) == len(records):
            await self._not_found(entity_id, "delete")
            return False

        await self._save_raw(remaining)

        if self._audit:
            await self._audit.log_entity_deleted(self.name, entity_id, correlation_id)
        return True

    async def _not_found(self, entity_id: str, operation: str) -> None:
        self._logger.warning(
            "record_not_found",
            collection=self.name,
            record_id=entity_id,
            operation=operation,
        )
        if self._audit:
            await self._audit.log_entity_not_found(self.name, entity_id, operation)


class PropertyRepository(CollectionRepository[Property]):
    """
    Properties.

    Deleting a property does NOT touch its tenants. They keep pointing at
    the missing property and become effectively archived.
    """

    collection = CollectionName.PROPERTIES
    model = Property


class TenantRepository(CollectionRepository[Tenant]):
    """
    Tenants, guarded by the cascade coordinator when one is attached.

    Without a coordinator this is plain CRUD (the coordinator itself uses
    such an unguarded instance).
    """

    collection = CollectionName.TENANTS
    model = Tenant

    def __init__(
        self,
        store: CollectionStoreInterface,
        coordinator: Optional["CascadeCoordinator"] = None,
        audit_logger: Optional["AuditLogger"] = None,
    ):
        super().__init__(store, audit_logger)
        self._coordinator = coordinator

    async def _before_add(self, entity: Tenant) -> None:
        if self._coordinator:
            await self._coordinator.check_tenant_write(entity)

    async def _before_update(self, entity: Tenant) -> None:
        if self._coordinator:
            await self._coordinator.check_tenant_write(entity)

    async def for_property(self, property_id: str) -> list[Tenant]:
        return [tenant for tenant in await self.list() if tenant.property_id == property_id]

    async def set_archived(self, tenant_id: str, archived: bool) -> Optional[Tenant]:
        """
        Set a tenant's own archived flag.

        Raises PropertyArchivedError if the tenant's property is archived.
        Returns the updated tenant, or None if the tenant does not exist.
        """
        if self._coordinator:
            return await self._coordinator.set_tenant_archived(tenant_id, archived)

        tenant = await self.get(tenant_id)
        if tenant is None:
            await self._not_found(tenant_id, "update")
            return None
        updated = tenant.model_copy(update={"archived": archived})
        await self.update(updated)
        return updated

    async def delete(
        self,
        entity_id: str,
        confirm: Optional[ConfirmCallback] = None,
    ) -> bool:
        """
        Delete a tenant and (with a coordinator) all of its payments.

        confirm receives the number of payments that would be removed;
        returning False cancels the whole deletion.
        """
        if self._coordinator:
            return await self._coordinator.delete_tenant(entity_id, confirm)
        return await self.remove(entity_id)


class PaymentRepository(CollectionRepository[Payment]):
    """Payments, guarded by the cascade coordinator when one is attached."""

    collection = CollectionName.PAYMENTS
    model = Payment

    def __init__(
        self,
        store: CollectionStoreInterface,
        coordinator: Optional["CascadeCoordinator"] = None,
        audit_logger: Optional["AuditLogger"] = None,
    ):
        super().__init__(store, audit_logger)
        self._coordinator = coordinator

    async def _before_add(self, entity: Payment) -> None:
        if self._coordinator:
            await self._coordinator.check_payment_write(entity)

    async def _before_update(self, entity: Payment) -> None:
        if self._coordinator:
            await self._coordinator.check_payment_write(entity)

    async def for_tenant(self, tenant_id: str) -> list[Payment]:
        return [payment for payment in await self.list() if payment.tenant_id == tenant_id]

    async def delete_for_tenant(
        self,
        tenant_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[str]:
        """
        Remove every payment referencing a tenant in one write.

        Returns the ids of the removed payments.
        """
        def references_tenant(raw: RawRecord) -> bool:
            return isinstance(raw, dict) and raw.get("tenantId") == tenant_id

        records = await self._load_raw()
        removed = [raw for raw in records if references_tenant(raw)]
        if not removed:
            return []

        await self._save_raw([raw for raw in records if not references_tenant(raw)])

        removed_ids = [record_id(raw) or "" for raw in removed]
        if self._audit:
            for payment_id in removed_ids:
                await self._audit.log_entity_deleted(self.name, payment_id, correlation_id)
        return removed_ids


class TodoRepository(CollectionRepository[Todo]):
    collection = CollectionName.TODOS
    model = Todo


class UserRepository(CollectionRepository[User]):
    """Users. Usernames are unique, compared case-insensitively."""

    collection = CollectionName.USERS
    model = User

    def _check_add(self, records: list[RawRecord], entity: User) -> None:
        wanted = entity.username.lower()
        for raw in records:
            username = raw.get("username") if isinstance(raw, dict) else None
            if isinstance(username, str) and username.lower() == wanted:
                raise DuplicateUsernameError(entity.username)

    async def get_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive lookup."""
        for user in await self.list():
            if user.matches_username(username):
                return user
        return None
