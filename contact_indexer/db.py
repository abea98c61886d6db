"""
Process-scoped handle to the contact store.

The handle owns the async engine and its connection lifecycle:
``connect()`` returns a ``ConnectionState`` (connected, or failed with a
``retry_after`` delay) and ``connect_with_retry()`` keeps trying on a fixed
delay until the store is reachable. Both engines receive the same handle.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from contact_indexer.exceptions.custom import StoreUnavailableError
from contact_indexer.models import Base

logger = logging.getLogger(__name__)


class ConnectionStatus(StrEnum):
    disconnected = "disconnected"
    connected = "connected"
    failed = "failed"


@dataclass(frozen=True)
class ConnectionState:
    status: ConnectionStatus
    error: str | None = None
    retry_after: float | None = None


def _engine_kwargs(url: str) -> dict:
    # In-memory SQLite lives in a single connection; share it across sessions.
    if url.startswith("sqlite") and ":memory:" in url:
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


class Database:
    def __init__(self, url: str, retry_delay_s: float = 5.0) -> None:
        self.url = url
        self.retry_delay_s = retry_delay_s
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        self.state = ConnectionState(ConnectionStatus.disconnected)

    @property
    def is_connected(self) -> bool:
        return self.state.status == ConnectionStatus.connected

    @property
    def dialect(self) -> str:
        if self._engine is None:
            raise StoreUnavailableError("Store is not connected", retry_after=self.retry_delay_s)
        return self._engine.dialect.name

    async def connect(self) -> ConnectionState:
        """Open the engine and create the schema; never raises."""
        try:
            if self._engine is None:
                self._engine = create_async_engine(self.url, **_engine_kwargs(self.url))
                self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Store connection error: %s", exc)
            self.state = ConnectionState(
                ConnectionStatus.failed,
                error=str(exc),
                retry_after=self.retry_delay_s,
            )
            return self.state

        logger.info("Connected to store: %s", self._engine.url.render_as_string(hide_password=True))
        self.state = ConnectionState(ConnectionStatus.connected)
        return self.state

    async def connect_with_retry(self) -> ConnectionState:
        while True:
            state = await self.connect()
            if state.status == ConnectionStatus.connected:
                return state
            logger.info("Retrying store connection in %.1fs", state.retry_after)
            await asyncio.sleep(state.retry_after or self.retry_delay_s)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if not self.is_connected or self._sessionmaker is None:
            raise StoreUnavailableError("Store is not connected", retry_after=self.retry_delay_s)
        async with self._sessionmaker() as session:
            yield session

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        self.state = ConnectionState(ConnectionStatus.disconnected)
