from __future__ import annotations

import asyncio
from typing import Iterable

from helpdesk.errors import DuplicateKeyError
from helpdesk.storage.base import USERS_COLLECTION, RecordStore
from helpdesk.tickets.records import user_from_record, user_to_record

from .models import User


class UserRepository:
    """User accounts kept as one collection in the record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._lock = asyncio.Lock()

    async def is_seeded(self) -> bool:
        return await self._store.load(USERS_COLLECTION) is not None

    async def list(self) -> list[User]:
        records = await self._store.load(USERS_COLLECTION) or []
        return [user_from_record(record) for record in records]

    async def get(self, username: str) -> User | None:
        for user in await self.list():
            if user.username == username:
                return user
        return None

    async def add(self, user: User) -> User:
        async with self._lock:
            users = await self.list()
            if any(existing.username == user.username for existing in users):
                raise DuplicateKeyError(f"Username '{user.username}' already exists")
            users.append(user)
            await self._store.store(USERS_COLLECTION, [user_to_record(item) for item in users])
        return user

    async def replace_all(self, users: Iterable[User]) -> None:
        async with self._lock:
            await self._store.store(USERS_COLLECTION, [user_to_record(user) for user in users])
