from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request

from helpdesk.dependencies.auth import role_required
from helpdesk.tickets.queries import TicketFilter
from helpdesk.tickets.service import TicketService
from helpdesk.tickets.state import Category, Priority, TicketStatus
from helpdesk.users.models import Principal, Role

require_admin = role_required(Role.ADMIN)

AdminUser = Annotated[Principal, Depends(require_admin)]


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


def ticket_filter(
    status: TicketStatus | None = Query(default=None),
    category: Category | None = Query(default=None),
    priority: Priority | None = Query(default=None),
    location: str | None = Query(default=None),
    search: str | None = Query(default=None),
    date_from: date | None = Query(default=None, alias="dateFrom"),
    date_to: date | None = Query(default=None, alias="dateTo"),
    submitted_by: str | None = Query(default=None, alias="submittedBy"),
) -> TicketFilter:
    return TicketFilter(
        status=status,
        category=category,
        priority=priority,
        location=location or None,
        search_text=search or None,
        date_from=date_from,
        date_to=date_to,
        submitted_by=submitted_by or None,
    )


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
TicketFilterDep = Annotated[TicketFilter, Depends(ticket_filter)]
