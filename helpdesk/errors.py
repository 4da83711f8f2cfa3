"""Error taxonomy shared by the ticket and user domains."""

from __future__ import annotations

from typing import Iterable


class HelpdeskError(RuntimeError):
    """Base error for help-desk domain failures."""


class ValidationError(HelpdeskError):
    """Raised when a required field is missing, empty or malformed."""

    def __init__(self, message: str, *, missing_fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing_fields: tuple[str, ...] = tuple(missing_fields)

    @classmethod
    def missing(cls, fields: Iterable[str]) -> "ValidationError":
        names = tuple(fields)
        return cls(f"Missing required fields: {', '.join(names)}", missing_fields=names)


class InvalidTransitionError(HelpdeskError):
    """Raised when a status change is not permitted from the current status."""


class UnauthorizedError(HelpdeskError):
    """Raised when the actor's role or identity does not permit the operation."""


class NotFoundError(HelpdeskError):
    """Raised when a referenced record does not exist."""


class TicketNotFoundError(NotFoundError):
    """Raised when a ticket could not be located."""


class UserNotFoundError(NotFoundError):
    """Raised when a user could not be located."""


class DuplicateKeyError(HelpdeskError):
    """Raised when a new record collides with an existing key."""


class ConflictError(HelpdeskError):
    """Raised when a write is based on a stale version of a ticket."""
