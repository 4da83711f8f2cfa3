from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from helpdesk.errors import ConflictError, DuplicateKeyError, TicketNotFoundError
from helpdesk.storage.base import TICKETS_COLLECTION, RecordStore

from .models import Ticket
from .queries import TicketFilter, filter_tickets
from .records import ticket_from_record, ticket_to_record

logger = logging.getLogger(__name__)


class TicketRepository:
    """Ticket access on top of a whole-collection record store.

    Every write is a read-modify-write of the full collection, serialised by a
    lock. :meth:`save` additionally checks the ticket version it was derived
    from, so a stale update raises :class:`ConflictError` instead of silently
    overwriting a concurrent change.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    async def _load(self) -> list[Ticket]:
        records = await self._store.load(TICKETS_COLLECTION) or []
        return [ticket_from_record(record) for record in records]

    async def _write(self, tickets: Iterable[Ticket]) -> None:
        await self._store.store(TICKETS_COLLECTION, [ticket_to_record(ticket) for ticket in tickets])

    async def get(self, ticket_id: str) -> Ticket | None:
        for ticket in await self._load():
            if ticket.id == ticket_id:
                return ticket
        return None

    async def list(self, criteria: TicketFilter | None = None) -> list[Ticket]:
        return filter_tickets(await self._load(), criteria)

    async def ids(self) -> set[str]:
        return {ticket.id for ticket in await self._load()}

    async def add(self, ticket: Ticket) -> Ticket:
        async with self._lock:
            tickets = await self._load()
            if any(existing.id == ticket.id for existing in tickets):
                raise DuplicateKeyError(f"Ticket {ticket.id} already exists")
            tickets.append(ticket)
            await self._write(tickets)
        return ticket

    async def save(self, ticket: Ticket, *, expected_version: int) -> Ticket:
        async with self._lock:
            tickets = await self._load()
            for index, existing in enumerate(tickets):
                if existing.id != ticket.id:
                    continue
                if existing.version != expected_version:
                    logger.warning(
                        "Rejected stale write to %s (expected version %s, stored %s)",
                        ticket.id,
                        expected_version,
                        existing.version,
                    )
                    raise ConflictError(
                        f"Ticket {ticket.id} was modified concurrently "
                        f"(expected version {expected_version}, found {existing.version})"
                    )
                tickets[index] = ticket
                await self._write(tickets)
                return ticket
        raise TicketNotFoundError(f"Ticket {ticket.id} not found")

    async def replace_all(self, tickets: Iterable[Ticket]) -> None:
        async with self._lock:
            await self._write(tickets)
