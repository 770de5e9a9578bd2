"""
SQLite Collection Store

DESIGN DECISION: A single local SQLite file is used as the key-value
substrate because:
1. No server - the data stays on the user's machine
2. Writes of one row are atomic, so a failed set leaves the old value
3. Nothing to install beyond the Python driver

TRADEOFFS:
- One row per collection, value is the whole JSON list
- No indexes, no per-entity tables (repositories filter in Python)
- No locking across read-modify-write (see repositories)

The schema version lives in PRAGMA user_version and is only ever raised.
"""

from pathlib import Path
from typing import Optional

from sqlalchemy import String, Text, delete, insert, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from abode.config import get_settings
from abode.services.storage.base import InitializingCollectionStore


class Base(DeclarativeBase):
    """Declarative base for the store's tables."""


class CollectionRow(Base):
    """One named collection and its JSON-encoded records."""

    __tablename__ = "collections"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="[]")


class SqliteCollectionStore(InitializingCollectionStore):
    """
    Collection store on a local SQLite file through aiosqlite.

    The engine is created inside the one-time initialization, so a bad path
    or an unreadable file surfaces as StorageUnavailableError on first use.
    """

    def __init__(
        self,
        database_path: Optional[Path] = None,
        schema_version: Optional[int] = None,
        echo: Optional[bool] = None,
        collections: Optional[list[str]] = None,
    ):
        super().__init__(collections)
        settings = get_settings().storage
        self._database_path = Path(database_path) if database_path else settings.database_path
        self._schema_version = schema_version or settings.schema_version
        self._echo = settings.echo_sql if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def database_path(self) -> Path:
        return self._database_path

    async def _initialize(self) -> None:
        self._database_path.parent.mkdir(parents=True, exist_ok=True)
        self._engine = create_async_engine(
            f"sqlite+aiosqlite:///{self._database_path}",
            echo=self._echo,
        )
        self._sessions = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

            current = (await conn.exec_driver_sql("PRAGMA user_version")).scalar_one()
            if current < self._schema_version:
                await conn.exec_driver_sql(
                    f"PRAGMA user_version = {int(self._schema_version)}"
                )
                self._logger.info(
                    "schema_version_raised",
                    previous=current,
                    current=self._schema_version,
                )

            existing = set((await conn.execute(select(CollectionRow.name))).scalars())
            for name in self._collections:
                if name not in existing:
                    await conn.execute(insert(CollectionRow).values(name=name, value="[]"))
                    self._logger.info("collection_created", collection=name)

    async def _read(self, name: str) -> Optional[str]:
        async with self._sessions() as session:
            row = await session.get(CollectionRow, name)
            return row.value if row is not None else None

    async def _write(self, name: str, payload: str) -> None:
        stmt = sqlite_insert(CollectionRow).values(name=name, value=payload)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CollectionRow.name],
            set_={"value": stmt.excluded.value},
        )
        async with self._sessions.begin() as session:
            await session.execute(stmt)

    async def _remove(self, name: str) -> bool:
        async with self._sessions.begin() as session:
            result = await session.execute(
                delete(CollectionRow).where(CollectionRow.name == name)
            )
            return result.rowcount > 0

    async def schema_version(self) -> int:
        """Schema version recorded in the database file."""
        await self.ensure_ready()
        async with self._engine.connect() as conn:
            return (await conn.exec_driver_sql("PRAGMA user_version")).scalar_one()

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
