"""Ticket lifecycle, submission, query and reporting."""

from .models import Comment, HistoryEntry, Ticket
from .queries import TicketFilter, filter_tickets, sort_tickets
from .state import Category, Priority, TicketStateMachine, TicketStatus

__all__ = [
    "Comment",
    "HistoryEntry",
    "Ticket",
    "TicketFilter",
    "filter_tickets",
    "sort_tickets",
    "Category",
    "Priority",
    "TicketStateMachine",
    "TicketStatus",
]
