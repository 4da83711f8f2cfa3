from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from helpdesk.api.errors import register_error_handlers
from helpdesk.api.routes import auth, ping, reports, tickets, users
from helpdesk.core.config import Settings, get_settings
from helpdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from helpdesk.storage.base import RecordStore
from helpdesk.storage.memory import InMemoryRecordStore
from helpdesk.tickets.repository import TicketRepository
from helpdesk.tickets.service import TicketService
from helpdesk.users.repository import UserRepository
from helpdesk.users.service import UserDirectory

logger = logging.getLogger(__name__)


async def create_record_store(settings: Settings) -> RecordStore:
    if settings.storage_backend == "postgres":
        from helpdesk.storage.postgres import PostgresRecordStore

        return await PostgresRecordStore.connect(settings.postgres_dsn)
    return InMemoryRecordStore()


async def build_services(store: RecordStore, settings: Settings) -> tuple[UserDirectory, TicketService]:
    directory = UserDirectory(UserRepository(store))
    if settings.seed_demo_users:
        await directory.seed_defaults()
    service = TicketService(
        repository=TicketRepository(store),
        users=directory,
        id_max_attempts=settings.ticket_id_max_attempts,
    )
    return directory, service


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app.state.logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider

    store = await create_record_store(settings)
    directory, service = await build_services(store, settings)
    app.state.record_store = store
    app.state.user_directory = directory
    app.state.ticket_service = service
    logger.info("%s started with %s record store", settings.app_name, settings.storage_backend)
    try:
        yield
    finally:
        await store.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(ping.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(tickets.router)
    app.include_router(reports.router)
    return app


app = create_app()
