"""
Storage Services Package

Provides the collection store interface, its backends, and the typed
entity repositories built on top of it.
"""

from abode.services.storage.interface import (
    CollectionStoreInterface,
    DuplicateUsernameError,
    IntegrityError,
    PropertyArchivedError,
    RawRecord,
    StorageError,
    StorageUnavailableError,
    TenantArchivedError,
)
from abode.services.storage.base import COLLECTION_NAMES, InitializingCollectionStore
from abode.services.storage.memory import InMemoryCollectionStore
from abode.services.storage.sqlite import SqliteCollectionStore
from abode.services.storage.repositories import (
    CollectionRepository,
    ConfirmCallback,
    PaymentRepository,
    PropertyRepository,
    TenantRepository,
    TodoRepository,
    UserRepository,
)

__all__ = [
    # Interfaces
    "CollectionStoreInterface",
    "InitializingCollectionStore",
    "RawRecord",
    "COLLECTION_NAMES",
    # Exceptions
    "DuplicateUsernameError",
    "IntegrityError",
    "PropertyArchivedError",
    "StorageError",
    "StorageUnavailableError",
    "TenantArchivedError",
    # Backends
    "InMemoryCollectionStore",
    "SqliteCollectionStore",
    # Repositories
    "CollectionRepository",
    "ConfirmCallback",
    "PaymentRepository",
    "PropertyRepository",
    "TenantRepository",
    "TodoRepository",
    "UserRepository",
]
