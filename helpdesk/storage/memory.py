from __future__ import annotations

import copy

from .base import Record


class InMemoryRecordStore:
    """Process-local record store used for development and tests."""

    def __init__(self, initial: dict[str, list[Record]] | None = None) -> None:
        self._collections: dict[str, list[Record]] = copy.deepcopy(initial or {})

    async def load(self, collection: str) -> list[Record] | None:
        records = self._collections.get(collection)
        return None if records is None else copy.deepcopy(records)

    async def store(self, collection: str, records: list[Record]) -> None:
        self._collections[collection] = copy.deepcopy(records)

    async def close(self) -> None:
        return None
