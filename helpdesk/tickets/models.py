from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from .state import Category, Priority, TicketStatus


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Audit trail entry describing a lifecycle action on a ticket."""

    action: str
    by: str
    at: datetime
    note: str | None = None


@dataclass(frozen=True, slots=True)
class Comment:
    by: str
    at: datetime
    text: str


@dataclass(frozen=True, slots=True)
class Ticket:
    """Aggregate representing a help-desk ticket.

    Tickets are immutable values: every lifecycle operation returns a new
    ticket with one more history entry (or comment) and a bumped ``version``.
    """

    id: str
    status: TicketStatus
    priority: Priority
    category: Category
    subcategory: str
    location: str
    description: str
    submitted_by: str
    created_at: datetime
    assigned_to: str | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    history: tuple[HistoryEntry, ...] = field(default_factory=tuple)
    comments: tuple[Comment, ...] = field(default_factory=tuple)
    version: int = 1

    def with_history(self, entry: HistoryEntry, **changes: object) -> "Ticket":
        return replace(self, history=(*self.history, entry), version=self.version + 1, **changes)

    def with_comment(self, comment: Comment) -> "Ticket":
        return replace(self, comments=(*self.comments, comment), version=self.version + 1)
