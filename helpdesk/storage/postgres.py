from __future__ import annotations

import json
import logging
from typing import Any

import asyncpg

from .base import Record

logger = logging.getLogger(__name__)


class PostgresRecordStore:
    """Record store keeping each collection as a single JSONB document."""

    _CREATE_RECORDS_SQL = """
    CREATE TABLE IF NOT EXISTS helpdesk_records (
        key TEXT PRIMARY KEY,
        payload JSONB NOT NULL DEFAULT '[]'::jsonb,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _SELECT_RECORDS_SQL = """
    SELECT payload FROM helpdesk_records WHERE key = $1
    """

    _UPSERT_RECORDS_SQL = """
    INSERT INTO helpdesk_records (key, payload, updated_at)
    VALUES ($1, $2::jsonb, CURRENT_TIMESTAMP)
    ON CONFLICT (key) DO UPDATE
    SET payload = EXCLUDED.payload,
        updated_at = CURRENT_TIMESTAMP
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    @classmethod
    async def connect(cls, dsn: str, *, min_size: int = 1, max_size: int = 5) -> "PostgresRecordStore":
        pool = await asyncpg.create_pool(dsn=dsn, min_size=min_size, max_size=max_size)
        store = cls(pool)
        await store.ensure_schema()
        return store

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_RECORDS_SQL)

    async def load(self, collection: str) -> list[Record] | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_RECORDS_SQL, collection)
        if row is None:
            return None
        return _decode_payload(row["payload"])

    async def store(self, collection: str, records: list[Record]) -> None:
        payload = json.dumps(records)
        async with self._pool.acquire() as connection:
            await connection.execute(self._UPSERT_RECORDS_SQL, collection, payload)
        logger.debug("Stored %d records in collection %s", len(records), collection)

    async def close(self) -> None:
        await self._pool.close()


def _decode_payload(payload: Any) -> list[Record]:
    if payload is None:
        return []
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    if not isinstance(payload, list):
        logger.warning("Ignoring non-list payload of type %s", type(payload).__name__)
        return []
    return [dict(item) for item in payload if isinstance(item, dict)]
