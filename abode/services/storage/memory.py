"""
In-memory collection store.

Same contract as the SQLite store, without a file. Values are kept as JSON
text so every read hands out a fresh copy, like the local database does.
Used by the test suite and for throwaway sessions.
"""

import json
from typing import Optional

from abode.services.storage.base import InitializingCollectionStore
from abode.services.storage.interface import RawRecord


class InMemoryCollectionStore(InitializingCollectionStore):
    """
    Collection store backed by a dict.

    Args:
        initial: Collections to preload at initialization
        init_error: If set, initialization raises this (simulates a broken database)
    """

    def __init__(
        self,
        initial: Optional[dict[str, list[RawRecord]]] = None,
        init_error: Optional[Exception] = None,
        collections: Optional[list[str]] = None,
    ):
        super().__init__(collections)
        self._data: dict[str, str] = {}
        self._initial = initial or {}
        self._init_error = init_error
        self.init_attempts = 0

    async def _initialize(self) -> None:
        self.init_attempts += 1
        if self._init_error is not None:
            raise self._init_error
        for name, records in self._initial.items():
            self._data[name] = json.dumps(records)
        for name in self._collections:
            self._data.setdefault(name, "[]")

    async def _read(self, name: str) -> Optional[str]:
        return self._data.get(name)

    async def _write(self, name: str, payload: str) -> None:
        self._data[name] = payload

    async def _remove(self, name: str) -> bool:
        return self._data.pop(name, None) is not None

    def put_raw(self, name: str, payload: str) -> None:
        """Store raw text under a collection name, bypassing encoding."""
        self._data[name] = payload
