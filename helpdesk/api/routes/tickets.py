from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from helpdesk.dependencies.auth import CurrentUser
from helpdesk.dependencies.tickets import TicketFilterDep, TicketServiceDep
from helpdesk.tickets.models import Ticket
from helpdesk.tickets.records import HistoryRecord, TicketRecord
from helpdesk.tickets.state import TicketStateMachine, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    # Presence is checked by the submission workflow so every missing field is reported at once.
    category: str | None = None
    subcategory: str | None = None
    location: str | None = None
    priority: str | None = None
    description: str | None = None


class TicketAssignRequest(BaseModel):
    assigned_to: str = Field(..., alias="assignedTo", min_length=1)


class TicketStatusChangeRequest(BaseModel):
    status: TicketStatus
    note: str | None = Field(default=None, max_length=500)


class TicketNoteRequest(BaseModel):
    note: str | None = Field(default=None, max_length=500)


class CommentCreateRequest(BaseModel):
    text: str = ""


class TicketDetailResponse(TicketRecord):
    allowed_transitions: list[TicketStatus] = Field(default_factory=list, alias="allowedTransitions")


def _to_response(ticket: Ticket) -> TicketRecord:
    return TicketRecord.from_ticket(ticket)


@router.post("", response_model=TicketRecord, status_code=status.HTTP_201_CREATED)
async def submit_ticket(payload: TicketCreateRequest, service: TicketServiceDep, user: CurrentUser) -> TicketRecord:
    ticket = await service.submit_ticket(
        user,
        category=payload.category,
        subcategory=payload.subcategory,
        location=payload.location,
        priority=payload.priority,
        description=payload.description,
    )
    return _to_response(ticket)


@router.get("", response_model=list[TicketRecord])
async def list_tickets(
    service: TicketServiceDep,
    user: CurrentUser,
    criteria: TicketFilterDep,
    sort: str = Query(default="created_at"),
    order: Literal["asc", "desc"] = Query(default="desc"),
) -> list[TicketRecord]:
    tickets = await service.list_tickets(user, criteria, sort_by=sort, descending=order == "desc")
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_ticket(ticket_id: str, service: TicketServiceDep, user: CurrentUser) -> TicketDetailResponse:
    ticket = await service.get_ticket(user, ticket_id)
    record = _to_response(ticket)
    return TicketDetailResponse(
        **record.model_dump(),
        allowed_transitions=sorted(TicketStateMachine.allowed_transitions(ticket.status), key=list(TicketStatus).index),
    )


@router.get("/{ticket_id}/history", response_model=list[HistoryRecord])
async def get_ticket_history(ticket_id: str, service: TicketServiceDep, user: CurrentUser) -> list[HistoryRecord]:
    ticket = await service.get_ticket(user, ticket_id)
    return _to_response(ticket).history


@router.post("/{ticket_id}/assign", response_model=TicketRecord)
async def assign_ticket(
    ticket_id: str,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketRecord:
    return _to_response(await service.assign(ticket_id, user, payload.assigned_to))


@router.post("/{ticket_id}/status", response_model=TicketRecord)
async def change_ticket_status(
    ticket_id: str,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketRecord:
    return _to_response(await service.change_status(ticket_id, user, payload.status, payload.note))


@router.post("/{ticket_id}/reopen", response_model=TicketRecord)
async def reopen_ticket(
    ticket_id: str,
    service: TicketServiceDep,
    user: CurrentUser,
    payload: TicketNoteRequest | None = None,
) -> TicketRecord:
    return _to_response(await service.reopen(ticket_id, user, payload.note if payload else None))


@router.post("/{ticket_id}/close", response_model=TicketRecord)
async def close_ticket(
    ticket_id: str,
    service: TicketServiceDep,
    user: CurrentUser,
    payload: TicketNoteRequest | None = None,
) -> TicketRecord:
    return _to_response(await service.close(ticket_id, user, payload.note if payload else None))


@router.post("/{ticket_id}/comments", response_model=TicketRecord, status_code=status.HTTP_201_CREATED)
async def add_comment(
    ticket_id: str,
    payload: CommentCreateRequest,
    service: TicketServiceDep,
    user: CurrentUser,
) -> TicketRecord:
    return _to_response(await service.add_comment(ticket_id, user, payload.text))
