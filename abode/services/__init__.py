"""Services package."""

from abode.services.storage import (
    CollectionStoreInterface,
    DuplicateUsernameError,
    InMemoryCollectionStore,
    IntegrityError,
    PaymentRepository,
    PropertyArchivedError,
    PropertyRepository,
    SqliteCollectionStore,
    StorageError,
    StorageUnavailableError,
    TenantArchivedError,
    TenantRepository,
    TodoRepository,
    UserRepository,
)

__all__ = [
    "CollectionStoreInterface",
    "DuplicateUsernameError",
    "InMemoryCollectionStore",
    "IntegrityError",
    "PaymentRepository",
    "PropertyArchivedError",
    "PropertyRepository",
    "SqliteCollectionStore",
    "StorageError",
    "StorageUnavailableError",
    "TenantArchivedError",
    "TenantRepository",
    "TodoRepository",
    "UserRepository",
]
