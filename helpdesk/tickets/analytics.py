"""Aggregations over a (pre-filtered) ticket collection.

Every function takes the tickets it should summarise; callers apply
:func:`helpdesk.tickets.queries.filter_tickets` first.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Sequence

from .models import Ticket
from .queries import sort_tickets
from .state import OPEN_STATUSES, RESOLVED_STATUSES, Category, Priority, TicketStatus

SECONDS_PER_DAY = 60 * 60 * 24
TOP_LOCATIONS_LIMIT = 8
LOCATION_LABEL_WIDTH = 12
RECENT_LIMIT = 5
URGENT_LIMIT = 5


@dataclass(frozen=True, slots=True)
class OpenResolvedCounts:
    open: int
    resolved: int


@dataclass(frozen=True, slots=True)
class LocationCount:
    name: str
    label: str
    count: int


@dataclass(frozen=True, slots=True)
class DailyCount:
    day: date
    count: int


@dataclass(frozen=True, slots=True)
class ResolutionPoint:
    day: date
    days: int
    ticket_id: str


def days_between(start: datetime, end: datetime) -> int:
    """Absolute difference in whole days, rounding half up."""

    delta = abs((end - start).total_seconds()) / SECONDS_PER_DAY
    return int(math.floor(delta + 0.5))


def _utc_day(moment: datetime) -> date:
    return moment.astimezone(timezone.utc).date()


def count_by_status(tickets: Iterable[Ticket]) -> dict[TicketStatus, int]:
    """Counts keyed by status, in first-seen order; absent statuses are omitted."""

    return dict(Counter(ticket.status for ticket in tickets))


def count_open_resolved(tickets: Iterable[Ticket]) -> OpenResolvedCounts:
    open_count = resolved_count = 0
    for ticket in tickets:
        if ticket.status in OPEN_STATUSES:
            open_count += 1
        elif ticket.status in RESOLVED_STATUSES:
            resolved_count += 1
    return OpenResolvedCounts(open=open_count, resolved=resolved_count)


def average_resolution_days(tickets: Iterable[Ticket]) -> float | None:
    """Mean days from creation to resolution, or ``None`` when nothing was resolved."""

    durations = [
        days_between(ticket.created_at, ticket.resolved_at)
        for ticket in tickets
        if ticket.resolved_at is not None and ticket.created_at is not None
    ]
    if not durations:
        return None
    return sum(durations) / len(durations)


def count_by_category(tickets: Iterable[Ticket]) -> dict[Category, int]:
    counts = Counter(ticket.category for ticket in tickets)
    return {category: counts.get(category, 0) for category in Category}


def count_by_priority(tickets: Iterable[Ticket]) -> dict[Priority, int]:
    counts = Counter(ticket.priority for ticket in tickets)
    return {priority: counts.get(priority, 0) for priority in Priority}


def truncate_label(name: str, width: int = LOCATION_LABEL_WIDTH) -> str:
    return f"{name[:width]}..." if len(name) > width else name


def top_locations(tickets: Iterable[Ticket], limit: int = TOP_LOCATIONS_LIMIT) -> list[LocationCount]:
    counts = Counter(ticket.location for ticket in tickets if ticket.location)
    # Counter preserves first-seen order; the stable sort keeps it for ties.
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [LocationCount(name=name, label=truncate_label(name), count=count) for name, count in ranked]


def tickets_per_day(tickets: Iterable[Ticket]) -> list[DailyCount]:
    counts = Counter(_utc_day(ticket.created_at) for ticket in tickets if ticket.created_at is not None)
    return [DailyCount(day=day, count=counts[day]) for day in sorted(counts)]


def resolution_trend(tickets: Iterable[Ticket]) -> list[ResolutionPoint]:
    resolved = [ticket for ticket in tickets if ticket.resolved_at is not None and ticket.created_at is not None]
    resolved.sort(key=lambda ticket: ticket.resolved_at)
    return [
        ResolutionPoint(
            day=_utc_day(ticket.resolved_at),
            days=days_between(ticket.created_at, ticket.resolved_at),
            ticket_id=ticket.id,
        )
        for ticket in resolved
    ]


def round_average(value: float | None) -> float | None:
    """One decimal place, rounding half up like :func:`days_between`."""

    if value is None:
        return None
    return math.floor(value * 10 + 0.5) / 10


@dataclass(frozen=True, slots=True)
class AnalyticsReport:
    total: int
    open: int
    resolved: int
    average_resolution_days: float | None
    by_status: dict[TicketStatus, int]
    by_category: dict[Category, int]
    by_priority: dict[Priority, int]
    top_locations: list[LocationCount]
    per_day: list[DailyCount]
    resolution_trend: list[ResolutionPoint]


def analytics_report(tickets: Sequence[Ticket]) -> AnalyticsReport:
    counts = count_open_resolved(tickets)
    return AnalyticsReport(
        total=len(tickets),
        open=counts.open,
        resolved=counts.resolved,
        average_resolution_days=round_average(average_resolution_days(tickets)),
        by_status=count_by_status(tickets),
        by_category=count_by_category(tickets),
        by_priority=count_by_priority(tickets),
        top_locations=top_locations(tickets),
        per_day=tickets_per_day(tickets),
        resolution_trend=resolution_trend(tickets),
    )


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    total: int
    open: int
    resolved: int
    critical_open: int
    new_unassigned: int
    average_resolution_days: float | None
    recent: list[Ticket]
    urgent: list[Ticket]


_URGENCY_RANK = {Priority.CRITICAL: 0, Priority.HIGH: 1}


def dashboard_summary(tickets: Sequence[Ticket]) -> DashboardSummary:
    counts = count_open_resolved(tickets)
    open_tickets = [ticket for ticket in tickets if ticket.status in OPEN_STATUSES]
    urgent = [ticket for ticket in open_tickets if ticket.priority in _URGENCY_RANK]
    urgent.sort(key=lambda ticket: _URGENCY_RANK[ticket.priority])
    return DashboardSummary(
        total=len(tickets),
        open=counts.open,
        resolved=counts.resolved,
        critical_open=sum(1 for ticket in open_tickets if ticket.priority is Priority.CRITICAL),
        new_unassigned=sum(1 for ticket in tickets if ticket.status is TicketStatus.NEW),
        average_resolution_days=round_average(average_resolution_days(tickets)),
        recent=sort_tickets(tickets, "created_at", descending=True)[:RECENT_LIMIT],
        urgent=urgent[:URGENT_LIMIT],
    )
