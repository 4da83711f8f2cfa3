"""Persisted record shapes and codecs.

Records use the camelCase keys of the stored collections and of the JSON
export bundle (``submittedBy``, ``createdAt`` ...). Timestamps are ISO-8601
strings; naive timestamps are read as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Iterable, Mapping, Sequence

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from helpdesk.errors import ValidationError
from helpdesk.users.models import Role, User

from .models import Comment, HistoryEntry, Ticket
from .state import Category, Priority, TicketStatus

CSV_HEADERS = (
    "ID",
    "Status",
    "Priority",
    "Category",
    "Subcategory",
    "Location",
    "Description",
    "Submitted By",
    "Assigned To",
    "Created",
    "Resolved",
)


def _ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class HistoryRecord(_Record):
    action: str
    by: str
    at: UtcDatetime
    note: str | None = None


class CommentRecord(_Record):
    by: str
    at: UtcDatetime
    text: str


class TicketRecord(_Record):
    id: str
    status: TicketStatus
    priority: Priority
    category: Category
    subcategory: str = ""
    location: str = ""
    description: str = ""
    submitted_by: str = Field(alias="submittedBy")
    assigned_to: str | None = Field(default=None, alias="assignedTo")
    created_at: UtcDatetime = Field(alias="createdAt")
    resolved_at: UtcDatetime | None = Field(default=None, alias="resolvedAt")
    closed_at: UtcDatetime | None = Field(default=None, alias="closedAt")
    history: list[HistoryRecord] = Field(default_factory=list)
    comments: list[CommentRecord] = Field(default_factory=list)
    version: int = 0

    @field_validator("history", "comments", mode="before")
    @classmethod
    def _default_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("subcategory", "location", "description", mode="before")
    @classmethod
    def _default_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketRecord":
        return cls(
            id=ticket.id,
            status=ticket.status,
            priority=ticket.priority,
            category=ticket.category,
            subcategory=ticket.subcategory,
            location=ticket.location,
            description=ticket.description,
            submitted_by=ticket.submitted_by,
            assigned_to=ticket.assigned_to,
            created_at=ticket.created_at,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
            history=[HistoryRecord(action=e.action, by=e.by, at=e.at, note=e.note) for e in ticket.history],
            comments=[CommentRecord(by=c.by, at=c.at, text=c.text) for c in ticket.comments],
            version=ticket.version,
        )

    def to_ticket(self) -> Ticket:
        return Ticket(
            id=self.id,
            status=self.status,
            priority=self.priority,
            category=self.category,
            subcategory=self.subcategory,
            location=self.location,
            description=self.description,
            submitted_by=self.submitted_by,
            assigned_to=self.assigned_to or None,
            created_at=self.created_at,
            resolved_at=self.resolved_at,
            closed_at=self.closed_at,
            history=tuple(HistoryEntry(action=e.action, by=e.by, at=e.at, note=e.note) for e in self.history),
            comments=tuple(Comment(by=c.by, at=c.at, text=c.text) for c in self.comments),
            version=self.version,
        )


class UserRecord(_Record):
    username: str
    password: str
    name: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "UserRecord":
        return cls(username=user.username, password=user.password, name=user.name, role=user.role)

    def to_user(self) -> User:
        return User(username=self.username, password=self.password, name=self.name, role=self.role)


class ExportBundle(_Record):
    users: list[UserRecord] | None = None
    tickets: list[TicketRecord] | None = None
    exported_at: UtcDatetime | None = Field(default=None, alias="exportedAt")


def _dump(record: BaseModel) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


def ticket_to_record(ticket: Ticket) -> dict[str, Any]:
    return _dump(TicketRecord.from_ticket(ticket))


def ticket_from_record(record: Mapping[str, Any]) -> Ticket:
    try:
        return TicketRecord.model_validate(record).to_ticket()
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed ticket record: {exc}") from exc


def user_to_record(user: User) -> dict[str, Any]:
    return _dump(UserRecord.from_user(user))


def user_from_record(record: Mapping[str, Any]) -> User:
    try:
        return UserRecord.model_validate(record).to_user()
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed user record: {exc}") from exc


def build_export_bundle(users: Iterable[User], tickets: Iterable[Ticket], *, now: datetime) -> dict[str, Any]:
    bundle = ExportBundle(
        users=[UserRecord.from_user(user) for user in users],
        tickets=[TicketRecord.from_ticket(ticket) for ticket in tickets],
        exported_at=now,
    )
    return _dump(bundle)


def parse_import_bundle(payload: Any) -> tuple[list[User] | None, list[Ticket] | None]:
    """Return the users and tickets present in ``payload``; absent parts are ``None``."""

    if not isinstance(payload, Mapping):
        raise ValidationError("Import bundle must be a JSON object")
    try:
        bundle = ExportBundle.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed import bundle: {exc}") from exc
    users = None if bundle.users is None else [record.to_user() for record in bundle.users]
    tickets = None if bundle.tickets is None else [record.to_ticket() for record in bundle.tickets]
    return users, tickets


def _csv_field(value: str) -> str:
    if any(char in value for char in (",", '"', "\n", "\r")):
        return _quote(value)
    return value


def _quote(value: str) -> str:
    escaped = value.replace('"', '""')
    return f'"{escaped}"'


def _iso(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def tickets_to_csv(tickets: Sequence[Ticket]) -> str:
    """Render tickets as CSV; the description column is always quoted."""

    lines = [",".join(CSV_HEADERS)]
    for ticket in tickets:
        row = [
            _csv_field(ticket.id),
            _csv_field(ticket.status.value),
            _csv_field(ticket.priority.value),
            _csv_field(ticket.category.value),
            _csv_field(ticket.subcategory),
            _csv_field(ticket.location),
            _quote(ticket.description or ""),
            _csv_field(ticket.submitted_by),
            _csv_field(ticket.assigned_to or ""),
            _iso(ticket.created_at),
            _iso(ticket.resolved_at),
        ]
        lines.append(",".join(row))
    return "\n".join(lines)
