from __future__ import annotations

from enum import Enum
from typing import Mapping

from helpdesk.errors import InvalidTransitionError


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    NEW = "New"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    REOPENED = "Reopened"

    def __str__(self) -> str:
        return self.value


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    def __str__(self) -> str:
        return self.value


class Category(str, Enum):
    HARDWARE = "Hardware"
    SOFTWARE = "Software"

    def __str__(self) -> str:
        return self.value


SUBCATEGORIES: Mapping[Category, tuple[str, ...]] = {
    Category.HARDWARE: (
        "Desktop/Laptop",
        "Printer/Scanner",
        "Projector/Display",
        "Network Equipment",
        "Keyboard/Mouse",
        "Monitor",
        "Phone/Tablet",
        "Other Hardware",
    ),
    Category.SOFTWARE: (
        "Operating System",
        "Microsoft Office",
        "Email/Outlook",
        "Browser",
        "Learning Management System",
        "Grading Software",
        "Antivirus/Security",
        "Network/Internet",
        "Account/Password",
        "Other Software",
    ),
}

LOCATIONS: tuple[str, ...] = (
    "Room 101",
    "Room 102",
    "Room 103",
    "Room 104",
    "Room 105",
    "Room 201",
    "Room 202",
    "Room 203",
    "Room 204",
    "Room 205",
    "Computer Lab A",
    "Computer Lab B",
    "Library",
    "Auditorium",
    "Main Office",
    "Teacher Lounge",
    "Gymnasium",
    "Cafeteria",
    "Science Lab",
    "Art Room",
)

OPEN_STATUSES: frozenset[TicketStatus] = frozenset(
    {
        TicketStatus.NEW,
        TicketStatus.ASSIGNED,
        TicketStatus.IN_PROGRESS,
        TicketStatus.ON_HOLD,
        TicketStatus.REOPENED,
    }
)
RESOLVED_STATUSES: frozenset[TicketStatus] = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})

# Statuses from which a ticket may be (re)assigned to an administrator.
ASSIGNABLE_STATUSES: frozenset[TicketStatus] = frozenset({TicketStatus.NEW, TicketStatus.REOPENED})


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    Two channels move a ticket between statuses. The workflow table below is
    driven by administrators; the submitter channel lets the person who filed a
    ticket confirm (close) or reject (reopen) a resolution.
    """

    _TRANSITIONS: Mapping[TicketStatus, frozenset[TicketStatus]] = {
        TicketStatus.NEW: frozenset({TicketStatus.ASSIGNED}),
        TicketStatus.ASSIGNED: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.ON_HOLD}),
        TicketStatus.IN_PROGRESS: frozenset({TicketStatus.ON_HOLD, TicketStatus.RESOLVED}),
        TicketStatus.ON_HOLD: frozenset({TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS}),
        TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED}),
        TicketStatus.CLOSED: frozenset(),
        TicketStatus.REOPENED: frozenset({TicketStatus.IN_PROGRESS}),
    }

    _SUBMITTER_TRANSITIONS: Mapping[TicketStatus, frozenset[TicketStatus]] = {
        TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.REOPENED}),
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.NEW

    @classmethod
    def allowed_transitions(cls, current: TicketStatus) -> frozenset[TicketStatus]:
        return cls._TRANSITIONS.get(current, frozenset())

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls.allowed_transitions(current)

    @classmethod
    def can_submitter_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls._SUBMITTER_TRANSITIONS.get(current, frozenset())

    @classmethod
    def is_terminal(cls, status: TicketStatus) -> bool:
        return not cls.allowed_transitions(status) and not cls._SUBMITTER_TRANSITIONS.get(status)

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise InvalidTransitionError(f"Invalid ticket status transition: {current!s} -> {new!s}")

    @classmethod
    def assert_submitter_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_submitter_transition(current, new):
            raise InvalidTransitionError(
                f"Submitter cannot move a ticket from {current!s} to {new!s}; "
                "only resolved tickets can be closed or reopened"
            )
