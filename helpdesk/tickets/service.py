from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from opentelemetry import trace

from helpdesk.errors import HelpdeskError, TicketNotFoundError, ValidationError
from helpdesk.users.models import Principal, Role
from helpdesk.users.permissions import Permission, ensure_principal, has_permission
from helpdesk.users.service import UserDirectory

from . import lifecycle
from .analytics import AnalyticsReport, DashboardSummary, analytics_report, dashboard_summary
from .models import Ticket
from .queries import TicketFilter, filter_tickets, sort_tickets, visible_tickets
from .records import build_export_bundle, parse_import_bundle, tickets_to_csv
from .repository import TicketRepository
from .state import ASSIGNABLE_STATUSES, Category, Priority, TicketStatus
from .submission import DEFAULT_MAX_ATTEMPTS, generate_ticket_id, submit

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Operation = Callable[[Ticket], Ticket]


@dataclass(frozen=True, slots=True)
class ImportSummary:
    users: int | None
    tickets: int | None


@dataclass(slots=True)
class TicketService:
    """High level orchestration for ticket lifecycle operations.

    Each mutation loads the current ticket, hands it to the lifecycle engine
    and persists the returned value against the version it was loaded at.
    """

    repository: TicketRepository
    users: UserDirectory
    clock: Callable[[], datetime] = lifecycle.utcnow
    rng: random.Random = field(default_factory=random.Random)
    id_max_attempts: int = DEFAULT_MAX_ATTEMPTS

    async def submit_ticket(
        self,
        actor: Principal,
        *,
        category: Category | str | None,
        subcategory: str | None,
        location: str | None,
        priority: Priority | str | None,
        description: str | None,
    ) -> Ticket:
        ensure_principal(actor, Permission.SUBMIT_TICKETS, action="submit tickets")
        now = self.clock()
        existing = await self.repository.ids()
        ticket = submit(
            actor.username,
            category,
            subcategory,
            location,
            priority,
            description,
            ticket_id=generate_ticket_id(now, existing=existing, rng=self.rng, max_attempts=self.id_max_attempts),
            now=now,
        )
        await self.repository.add(ticket)
        logger.info("Ticket %s submitted by %s (%s/%s)", ticket.id, actor.username, ticket.category, ticket.priority)
        return ticket

    async def _load(self, ticket_id: str) -> Ticket:
        ticket = await self.repository.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def get_ticket(self, actor: Principal, ticket_id: str) -> Ticket:
        ensure_principal(actor, Permission.VIEW_TICKETS, action="view tickets")
        ticket = await self._load(ticket_id)
        if not visible_tickets([ticket], actor):
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def list_tickets(
        self,
        actor: Principal,
        criteria: TicketFilter | None = None,
        *,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> list[Ticket]:
        ensure_principal(actor, Permission.VIEW_TICKETS, action="list tickets")
        tickets = visible_tickets(await self.repository.list(), actor)
        return sort_tickets(filter_tickets(tickets, criteria), sort_by, descending=descending)

    async def _apply(self, ticket_id: str, actor: Principal, operation: Operation, description: str) -> Ticket:
        with tracer.start_as_current_span(f"ticket.{description.replace(' ', '_')}") as span:
            span.set_attribute("ticket.id", ticket_id)
            span.set_attribute("actor", actor.username)
            current = await self._load(ticket_id)
            try:
                updated = operation(current)
            except HelpdeskError as exc:
                logger.warning("Rejected %s on %s by %s: %s", description, ticket_id, actor.username, exc)
                raise
            await self.repository.save(updated, expected_version=current.version)
        logger.info(
            "Ticket %s %s by %s (%s -> %s)",
            ticket_id,
            description,
            actor.username,
            current.status,
            updated.status,
        )
        return updated

    async def assign(self, ticket_id: str, actor: Principal, assignee: str) -> Ticket:
        current = await self._load(ticket_id)
        assignee_name = None
        # Errors about the ticket itself take precedence over the assignee lookup.
        if has_permission(actor.role, Permission.MANAGE_TICKETS) and current.status in ASSIGNABLE_STATUSES and assignee:
            target = await self.users.get_user(assignee)
            if target.role is not Role.ADMIN:
                raise ValidationError(f"Tickets can only be assigned to administrators; '{assignee}' is a {target.role}")
            assignee_name = target.name
        now = self.clock()
        return await self._apply(
            ticket_id,
            actor,
            lambda ticket: lifecycle.assign(ticket, actor, assignee, assignee_name=assignee_name, now=now),
            "assign",
        )

    async def change_status(
        self,
        ticket_id: str,
        actor: Principal,
        new_status: TicketStatus,
        note: str | None = None,
    ) -> Ticket:
        now = self.clock()
        return await self._apply(
            ticket_id,
            actor,
            lambda ticket: lifecycle.change_status(ticket, actor, new_status, note, now=now),
            "status change",
        )

    async def reopen(self, ticket_id: str, actor: Principal, note: str | None = None) -> Ticket:
        now = self.clock()
        return await self._apply(
            ticket_id, actor, lambda ticket: lifecycle.reopen(ticket, actor, note, now=now), "reopen"
        )

    async def close(self, ticket_id: str, actor: Principal, note: str | None = None) -> Ticket:
        now = self.clock()
        return await self._apply(
            ticket_id, actor, lambda ticket: lifecycle.close(ticket, actor, note, now=now), "close"
        )

    async def add_comment(self, ticket_id: str, actor: Principal, text: str) -> Ticket:
        now = self.clock()
        return await self._apply(
            ticket_id, actor, lambda ticket: lifecycle.add_comment(ticket, actor, text, now=now), "comment"
        )

    async def analytics(self, actor: Principal, criteria: TicketFilter | None = None) -> AnalyticsReport:
        ensure_principal(actor, Permission.VIEW_ANALYTICS, action="view analytics")
        return analytics_report(await self.repository.list(criteria))

    async def dashboard(self, actor: Principal) -> DashboardSummary:
        return dashboard_summary(visible_tickets(await self.repository.list(), actor))

    async def export_csv(self, actor: Principal, criteria: TicketFilter | None = None) -> str:
        ensure_principal(actor, Permission.VIEW_ANALYTICS, action="export tickets")
        return tickets_to_csv(await self.repository.list(criteria))

    async def export_bundle(self, actor: Principal) -> dict[str, Any]:
        ensure_principal(actor, Permission.MANAGE_DATA, action="export data")
        users = await self.users.repository.list()
        tickets = await self.repository.list()
        return build_export_bundle(users, tickets, now=self.clock())

    async def import_bundle(self, actor: Principal, payload: Any) -> ImportSummary:
        """Replace the collections present in ``payload``; absent ones are left untouched."""

        ensure_principal(actor, Permission.MANAGE_DATA, action="import data")
        users, tickets = parse_import_bundle(payload)
        if users is not None:
            await self.users.repository.replace_all(users)
        if tickets is not None:
            await self.repository.replace_all(tickets)
        logger.info(
            "Import by %s: users=%s tickets=%s",
            actor.username,
            "skipped" if users is None else len(users),
            "skipped" if tickets is None else len(tickets),
        )
        return ImportSummary(
            users=None if users is None else len(users),
            tickets=None if tickets is None else len(tickets),
        )
