from __future__ import annotations

import pytest
import pytest_asyncio

from factories import NOW
from helpdesk.storage.memory import InMemoryRecordStore
from helpdesk.tickets.repository import TicketRepository
from helpdesk.tickets.service import TicketService
from helpdesk.users.models import Principal, Role
from helpdesk.users.repository import UserRepository
from helpdesk.users.service import UserDirectory


@pytest.fixture
def admin() -> Principal:
    return Principal(username="admin", name="IT Admin", role=Role.ADMIN)


@pytest.fixture
def teacher() -> Principal:
    return Principal(username="jdoe", name="John Doe", role=Role.TEACHER)


@pytest.fixture
def other_teacher() -> Principal:
    return Principal(username="asmith", name="Anna Smith", role=Role.TEACHER)


@pytest.fixture
def principal_user() -> Principal:
    return Principal(username="principal", name="School Principal", role=Role.PRINCIPAL)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def directory(store: InMemoryRecordStore) -> UserDirectory:
    directory = UserDirectory(UserRepository(store))
    await directory.seed_defaults()
    return directory


@pytest.fixture
def service(store: InMemoryRecordStore, directory: UserDirectory) -> TicketService:
    return TicketService(repository=TicketRepository(store), users=directory, clock=lambda: NOW)
