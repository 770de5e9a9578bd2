"""
Shared behaviour for collection store backends.

Backends only move JSON text in and out. This base class owns:
- the single lazy initialization attempt every operation waits on
- JSON encoding/decoding of collection values
- treating missing or corrupted collections as empty
- wrapping backend exceptions in StorageError
"""

import asyncio
import json
from abc import abstractmethod
from typing import Any, Optional

import structlog

from abode.models.entities import CollectionName
from abode.services.storage.interface import (
    CollectionStoreInterface,
    RawRecord,
    StorageError,
    StorageUnavailableError,
)


COLLECTION_NAMES = [name.value for name in CollectionName]


class InitializingCollectionStore(CollectionStoreInterface):
    """
    Collection store with one-shot lazy initialization.

    The first operation starts initialization; every operation (including
    concurrent ones) awaits that same attempt. A failed attempt is never
    retried: all later operations raise StorageUnavailableError.
    """

    def __init__(self, collections: Optional[list[str]] = None):
        self._collections = list(collections or COLLECTION_NAMES)
        self._init_task: Optional[asyncio.Future] = None
        self._logger = structlog.get_logger("abode.storage")

    @property
    def collections(self) -> list[str]:
        return list(self._collections)

    @abstractmethod
    async def _initialize(self) -> None:
        """Open the backend and make sure every named collection exists."""

    @abstractmethod
    async def _read(self, name: str) -> Optional[str]:
        """Return the stored JSON text for a collection, or None."""

    @abstractmethod
    async def _write(self, name: str, payload: str) -> None:
        """Store JSON text for a collection."""

    @abstractmethod
    async def _remove(self, name: str) -> bool:
        """Remove a collection. True if something was removed."""

    async def ensure_ready(self) -> None:
        """Wait for the single initialization attempt."""
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        try:
            await asyncio.shield(self._init_task)
        except StorageUnavailableError:
            raise
        except Exception as e:
            self._logger.error("storage_init_failed", error=str(e))
            raise StorageUnavailableError(f"Storage unavailable: {e}") from e

    async def get(self, name: str) -> list[RawRecord]:
        await self.ensure_ready()
        try:
            payload = await self._read(name)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read collection '{name}': {e}") from e

        if payload is None:
            return []
        return self._decode(name, payload)

    async def set(self, name: str, records: list[RawRecord]) -> bool:
        await self.ensure_ready()
        try:
            payload = json.dumps(list(records))
        except (TypeError, ValueError) as e:
            raise StorageError(f"Collection '{name}' is not serializable: {e}") from e

        try:
            await self._write(name, payload)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write collection '{name}': {e}") from e
        return True

    async def delete(self, name: str) -> bool:
        await self.ensure_ready()
        try:
            return await self._remove(name)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete collection '{name}': {e}") from e

    def _decode(self, name: str, payload: str) -> list[RawRecord]:
        """Decode a stored value; anything that is not a JSON list is empty."""
        try:
            value: Any = json.loads(payload)
        except (TypeError, ValueError) as e:
            self._logger.warning("collection_corrupted", collection=name, error=str(e))
            return []

        if not isinstance(value, list):
            self._logger.warning(
                "collection_corrupted",
                collection=name,
                error=f"expected a list, got {type(value).__name__}",
            )
            return []
        return value
