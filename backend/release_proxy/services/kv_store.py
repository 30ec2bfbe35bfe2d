"""
Durable key-value store with per-key expiry.

The rate limiter only needs three operations — get, put-with-TTL and
delete — so it depends on the KeyValueStore protocol rather than on
SQLAlchemy directly. SqlKeyValueStore is the production implementation.

Design decisions:
  • Atomic upsert — INSERT … ON CONFLICT DO UPDATE gives per-key
    atomicity without external locks.
  • Lazy expiry — reads filter out rows past expires_at_ms; expired
    rows are removed in bulk by purge_expired() (startup + operator script).
  • Errors propagate — callers decide whether to fail open.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from release_proxy.core.database import build_session_factory
from release_proxy.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal async key-value contract used by the rate limiter."""

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class SqlKeyValueStore:
    """KeyValueStore backed by the kv_entries table."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session_factory = build_session_factory(engine)
        self._clock = clock
        # Postgres and SQLite share the on_conflict_do_update API
        self._insert = sqlite_insert if engine.dialect.name == "sqlite" else pg_insert

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def get(self, key: str) -> str | None:
        """Return the live value for key, or None if absent or expired."""
        stmt = select(KVEntry.value).where(
            KVEntry.key == key,
            KVEntry.expires_at_ms > self._now_ms(),
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Insert or overwrite key; the entry expires ttl_seconds from now."""
        expires_at_ms = self._now_ms() + ttl_seconds * 1000
        stmt = self._insert(KVEntry).values(
            key=key,
            value=value,
            expires_at_ms=expires_at_ms,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={
                "value": stmt.excluded.value,
                "expires_at_ms": stmt.excluded.expires_at_ms,
            },
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is a no-op."""
        async with self._session_factory() as session:
            await session.execute(delete(KVEntry).where(KVEntry.key == key))
            await session.commit()

    async def purge_expired(self) -> int:
        """Physically delete every expired entry. Returns the row count."""
        stmt = delete(KVEntry).where(KVEntry.expires_at_ms <= self._now_ms())
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired store entries", removed)
        return removed
