from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Collection

from helpdesk.errors import DuplicateKeyError, ValidationError

from .lifecycle import utcnow
from .models import HistoryEntry, Ticket
from .state import Category, Priority, TicketStateMachine

TICKET_ID_PREFIX = "TKT"
DEFAULT_MAX_ATTEMPTS = 20

_REQUIRED_FIELDS = ("category", "subcategory", "location", "priority", "description")


def format_ticket_id(day: datetime, suffix: int) -> str:
    return f"{TICKET_ID_PREFIX}-{day.astimezone(timezone.utc):%Y%m%d}-{suffix:03d}"


def generate_ticket_id(
    now: datetime | None = None,
    *,
    existing: Collection[str] = (),
    rng: random.Random | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """Return a ``TKT-YYYYMMDD-NNN`` id that does not collide with ``existing``.

    The three digit suffix is drawn at random from 001-999; collisions are
    retried up to ``max_attempts`` times.
    """

    now = now or utcnow()
    rng = rng or random.Random()
    taken = set(existing)
    for _ in range(max(1, max_attempts)):
        candidate = format_ticket_id(now, rng.randint(1, 999))
        if candidate not in taken:
            return candidate
    raise DuplicateKeyError(f"Could not generate a unique ticket id after {max_attempts} attempts")


def _coerce(value: object, enum_type: type, field_name: str):
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"Invalid {field_name} '{value}'; expected one of: {allowed}") from exc


def submit(
    submitted_by: str,
    category: Category | str | None,
    subcategory: str | None,
    location: str | None,
    priority: Priority | str | None,
    description: str | None,
    *,
    ticket_id: str | None = None,
    existing_ids: Collection[str] = (),
    now: datetime | None = None,
) -> Ticket:
    """Validate a submission and build a new ticket in the initial status."""

    values = {
        "category": category,
        "subcategory": subcategory,
        "location": location,
        "priority": priority,
        "description": description,
    }
    missing = [name for name in _REQUIRED_FIELDS if not str(values[name] or "").strip()]
    if not submitted_by or not submitted_by.strip():
        missing.insert(0, "submittedBy")
    if missing:
        raise ValidationError.missing(missing)

    at = now or utcnow()
    return Ticket(
        id=ticket_id or generate_ticket_id(at, existing=existing_ids),
        status=TicketStateMachine.initial_state(),
        priority=_coerce(priority, Priority, "priority"),
        category=_coerce(category, Category, "category"),
        subcategory=str(subcategory).strip(),
        location=str(location).strip(),
        description=str(description),
        submitted_by=submitted_by,
        created_at=at,
        history=(HistoryEntry(action="Created", by=submitted_by, at=at, note="Ticket submitted"),),
        comments=(),
    )
