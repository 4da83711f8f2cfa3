"""Filtering, sorting and role scoping over a snapshot of the ticket collection."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

from helpdesk.errors import ValidationError
from helpdesk.users.models import Principal
from helpdesk.users.permissions import Permission, has_permission

from .models import Ticket
from .state import Category, Priority, TicketStatus

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True, slots=True)
class TicketFilter:
    """Conjunction of optional criteria; unset or empty fields are ignored."""

    status: TicketStatus | None = None
    category: Category | None = None
    priority: Priority | None = None
    location: str | None = None
    search_text: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    submitted_by: str | None = None

    def is_empty(self) -> bool:
        return not any(getattr(self, item.name) for item in fields(self))


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _end_of(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY, tzinfo=timezone.utc)


def matches_search(ticket: Ticket, search_text: str) -> bool:
    needle = search_text.lower()
    haystack = (ticket.id, ticket.description, ticket.submitted_by, ticket.subcategory or "")
    return any(needle in value.lower() for value in haystack)


def _predicates(criteria: TicketFilter) -> list[Callable[[Ticket], bool]]:
    predicates: list[Callable[[Ticket], bool]] = []
    if criteria.status:
        predicates.append(lambda ticket: ticket.status == criteria.status)
    if criteria.category:
        predicates.append(lambda ticket: ticket.category == criteria.category)
    if criteria.priority:
        predicates.append(lambda ticket: ticket.priority == criteria.priority)
    if criteria.location:
        predicates.append(lambda ticket: ticket.location == criteria.location)
    if criteria.search_text:
        predicates.append(lambda ticket: matches_search(ticket, criteria.search_text or ""))
    if criteria.date_from:
        lower = _start_of(criteria.date_from)
        predicates.append(lambda ticket: ticket.created_at >= lower)
    if criteria.date_to:
        upper = _end_of(criteria.date_to)
        predicates.append(lambda ticket: ticket.created_at <= upper)
    if criteria.submitted_by:
        predicates.append(lambda ticket: ticket.submitted_by == criteria.submitted_by)
    return predicates


def filter_tickets(tickets: Iterable[Ticket], criteria: TicketFilter | None = None) -> list[Ticket]:
    """Return the tickets matching every supplied criterion, in input order."""

    if criteria is None:
        return list(tickets)
    predicates = _predicates(criteria)
    return [ticket for ticket in tickets if all(predicate(ticket) for predicate in predicates)]


SORT_FIELDS: Mapping[str, Callable[[Ticket], Any]] = {
    "id": lambda ticket: ticket.id,
    "status": lambda ticket: ticket.status.value,
    "priority": lambda ticket: ticket.priority.value,
    "category": lambda ticket: ticket.category.value,
    "subcategory": lambda ticket: ticket.subcategory,
    "location": lambda ticket: ticket.location,
    "submitted_by": lambda ticket: ticket.submitted_by,
    "assigned_to": lambda ticket: ticket.assigned_to,
    "created_at": lambda ticket: ticket.created_at,
    "resolved_at": lambda ticket: ticket.resolved_at,
    "closed_at": lambda ticket: ticket.closed_at,
}

_SORT_ALIASES = {
    "createdAt": "created_at",
    "resolvedAt": "resolved_at",
    "closedAt": "closed_at",
    "submittedBy": "submitted_by",
    "assignedTo": "assigned_to",
}


def sort_tickets(
    tickets: Iterable[Ticket],
    field: str = "created_at",
    *,
    descending: bool = True,
) -> list[Ticket]:
    """Stable sort by ``field``; missing values order before present ones."""

    name = _SORT_ALIASES.get(field, field)
    accessor = SORT_FIELDS.get(name)
    if accessor is None:
        raise ValidationError(f"Unsupported sort field '{field}'; expected one of: {', '.join(SORT_FIELDS)}")

    def key(ticket: Ticket) -> tuple[int, Any]:
        value = accessor(ticket)
        return (0, "") if value is None else (1, value)

    # sorted() keeps ties in input order for reverse=True as well.
    return sorted(tickets, key=key, reverse=descending)


def visible_tickets(tickets: Sequence[Ticket], principal: Principal) -> list[Ticket]:
    """Restrict a collection to what ``principal`` is allowed to see."""

    if has_permission(principal.role, Permission.VIEW_ALL_TICKETS):
        return list(tickets)
    return [ticket for ticket in tickets if ticket.submitted_by == principal.username]
