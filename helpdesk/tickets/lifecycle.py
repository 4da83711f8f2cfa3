"""Ticket lifecycle engine.

Pure functions that validate a requested change against the state machine and
the caller's authority, and return a new :class:`Ticket` value. Nothing here
touches storage; callers persist the returned ticket.

Status changes flow through two guarded entry points:

* the workflow channel (:func:`assign`, :func:`change_status`) for
  administrators, driven by :class:`TicketStateMachine`'s table;
* the submitter channel (:func:`reopen`, :func:`close`) for the user who filed
  the ticket, available only once it is resolved.
"""

from __future__ import annotations

from datetime import datetime, timezone

from helpdesk.errors import InvalidTransitionError, UnauthorizedError, ValidationError
from helpdesk.users.models import Principal
from helpdesk.users.permissions import Permission, has_permission

from .models import Comment, HistoryEntry, Ticket
from .state import ASSIGNABLE_STATUSES, TicketStateMachine, TicketStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def status_action(status: TicketStatus) -> str:
    return f"Status changed to {status}"


def _clean_note(note: str | None) -> str | None:
    if note is None:
        return None
    note = note.strip()
    return note or None


def _require_workflow_role(actor: Principal, action: str) -> None:
    if not has_permission(actor.role, Permission.MANAGE_TICKETS):
        raise UnauthorizedError(f"User '{actor.username}' ({actor.role}) may not {action}")


def _require_submitter(ticket: Ticket, actor: Principal, action: str) -> None:
    if actor.username != ticket.submitted_by:
        raise UnauthorizedError(f"Only the submitter of {ticket.id} may {action} it")


def assign(
    ticket: Ticket,
    actor: Principal,
    assignee: str,
    *,
    assignee_name: str | None = None,
    now: datetime | None = None,
) -> Ticket:
    """Assign a new or reopened ticket to an administrator."""

    _require_workflow_role(actor, "assign tickets")
    if ticket.status not in ASSIGNABLE_STATUSES:
        raise InvalidTransitionError(f"Cannot assign ticket {ticket.id} while it is {ticket.status}")
    if not assignee or not assignee.strip():
        raise ValidationError.missing(["assignedTo"])

    at = now or utcnow()
    entry = HistoryEntry(
        action=status_action(TicketStatus.ASSIGNED),
        by=actor.username,
        at=at,
        note=f"Assigned to {assignee_name or assignee}",
    )
    return ticket.with_history(entry, status=TicketStatus.ASSIGNED, assigned_to=assignee)


def change_status(
    ticket: Ticket,
    actor: Principal,
    new_status: TicketStatus,
    note: str | None = None,
    *,
    now: datetime | None = None,
) -> Ticket:
    """Move a ticket along the administrator workflow table."""

    _require_workflow_role(actor, "change ticket status")
    try:
        new_status = TicketStatus(new_status)
    except ValueError as exc:
        allowed = ", ".join(status.value for status in TicketStatus)
        raise ValidationError(f"Invalid status '{new_status}'; expected one of: {allowed}") from exc
    TicketStateMachine.assert_transition(ticket.status, new_status)

    at = now or utcnow()
    entry = HistoryEntry(
        action=status_action(new_status),
        by=actor.username,
        at=at,
        note=_clean_note(note) or f"Status updated to {new_status}",
    )
    changes: dict[str, object] = {"status": new_status}
    if new_status is TicketStatus.RESOLVED:
        changes["resolved_at"] = at
    if new_status is TicketStatus.CLOSED:
        changes["closed_at"] = at
    return ticket.with_history(entry, **changes)


def reopen(ticket: Ticket, actor: Principal, note: str | None = None, *, now: datetime | None = None) -> Ticket:
    """Reject a resolution: the submitter sends the ticket back to the queue."""

    TicketStateMachine.assert_submitter_transition(ticket.status, TicketStatus.REOPENED)
    _require_submitter(ticket, actor, "reopen")

    at = now or utcnow()
    entry = HistoryEntry(
        action=status_action(TicketStatus.REOPENED),
        by=actor.username,
        at=at,
        note=_clean_note(note) or "Ticket reopened",
    )
    return ticket.with_history(entry, status=TicketStatus.REOPENED, resolved_at=None)


def close(ticket: Ticket, actor: Principal, note: str | None = None, *, now: datetime | None = None) -> Ticket:
    """Confirm a resolution: the submitter closes the ticket."""

    TicketStateMachine.assert_submitter_transition(ticket.status, TicketStatus.CLOSED)
    _require_submitter(ticket, actor, "close")

    at = now or utcnow()
    entry = HistoryEntry(
        action=status_action(TicketStatus.CLOSED),
        by=actor.username,
        at=at,
        note=_clean_note(note) or f"Status updated to {TicketStatus.CLOSED}",
    )
    return ticket.with_history(entry, status=TicketStatus.CLOSED, closed_at=at)


def can_comment(ticket: Ticket, actor: Principal) -> bool:
    return has_permission(actor.role, Permission.MANAGE_TICKETS) or actor.username == ticket.submitted_by


def add_comment(ticket: Ticket, actor: Principal, text: str, *, now: datetime | None = None) -> Ticket:
    if not can_comment(ticket, actor):
        raise UnauthorizedError(f"User '{actor.username}' may not comment on {ticket.id}")
    text = (text or "").strip()
    if not text:
        raise ValidationError.missing(["text"])
    return ticket.with_comment(Comment(by=actor.username, at=now or utcnow(), text=text))
