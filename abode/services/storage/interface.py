"""
Abstract Collection Store Interface

DESIGN DECISION: Storage is a flat key-value substrate. Each key names a
collection and each value is the whole ordered list of raw records.
This allows us to:
1. Keep the local SQLite file dumb (no per-entity tables, no indexes)
2. Use in-memory storage for testing
3. Put every relational guarantee in Python, above the store

The interface is intentionally tiny - get, set, delete. Repositories do a
full read-modify-write of one collection per write.
"""

from abc import ABC, abstractmethod
from typing import Any


RawRecord = dict[str, Any]


class CollectionStoreInterface(ABC):
    """
    Abstract interface for collection storage.

    Any backend (SQLite, in-memory, ...) must implement these methods.
    Every method first waits on the store's one-time initialization.
    """

    @abstractmethod
    async def get(self, name: str) -> list[RawRecord]:
        """
        Read a whole collection.

        Args:
            name: Collection name (e.g. 'tenants')

        Returns:
            The ordered records, or [] if the collection is missing or corrupted

        Raises:
            StorageUnavailableError: If initialization failed
            StorageError: If the backend read fails
        """
        pass

    @abstractmethod
    async def set(self, name: str, records: list[RawRecord]) -> bool:
        """
        Replace a whole collection.

        Args:
            name: Collection name
            records: The full ordered list of records to store

        Returns:
            True if written

        Raises:
            StorageUnavailableError: If initialization failed
            StorageError: If the write fails (previous value stays intact)
        """
        pass

    @abstractmethod
    async def delete(self, name: str) -> bool:
        """
        Remove a collection.

        Returns:
            True if a stored value was removed, False if there was none
        """
        pass

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
        return None


class StorageError(Exception):
    """Base exception for storage operations (generic storage failure)."""
    pass


class StorageUnavailableError(StorageError):
    """The store could not be initialized. Fatal until restart."""
    pass


class DuplicateUsernameError(StorageError):
    """Attempted to register a username that is already taken."""

    def __init__(self, username: str):
        self.username = username
        super().__init__("Username is already taken.")


class IntegrityError(StorageError):
    """A write broke a cross-entity rule. Nothing was written."""

    def __init__(self, message: str, entity_id: str, reference_id: str):
        self.entity_id = entity_id
        self.reference_id = reference_id
        super().__init__(message)


class PropertyArchivedError(IntegrityError):
    """The write targets a tenant whose property is archived."""

    def __init__(self, entity_id: str, property_id: str):
        super().__init__(
            f"Property {property_id} is archived or no longer exists; unarchive it first.",
            entity_id=entity_id,
            reference_id=property_id,
        )


class TenantArchivedError(IntegrityError):
    """The write targets a payment whose tenant is effectively archived."""

    def __init__(self, entity_id: str, tenant_id: str):
        super().__init__(
            f"Tenant {tenant_id} is archived or no longer exists.",
            entity_id=entity_id,
            reference_id=tenant_id,
        )
