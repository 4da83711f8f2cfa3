from __future__ import annotations

from typing import Any, Protocol

USERS_COLLECTION = "users"
TICKETS_COLLECTION = "tickets"

Record = dict[str, Any]


class RecordStore(Protocol):
    """Whole-collection key/value store.

    Collections are read and written in full; there are no partial updates,
    transactions or indexes at this level.
    """

    async def load(self, collection: str) -> list[Record] | None:
        """Return the stored records, or ``None`` when the collection was never written."""
        ...

    async def store(self, collection: str, records: list[Record]) -> None:
        ...

    async def close(self) -> None:
        ...
