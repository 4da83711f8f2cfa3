"""Role based permission tables.

Each table lists every :class:`Role` explicitly so adding a role forces a
decision for every permission.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from helpdesk.errors import UnauthorizedError

from .models import Principal, Role


class Permission(str, Enum):
    SUBMIT_TICKETS = "submit_tickets"
    VIEW_TICKETS = "view_tickets"
    VIEW_ALL_TICKETS = "view_all_tickets"
    MANAGE_TICKETS = "manage_tickets"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_USERS = "manage_users"
    MANAGE_DATA = "manage_data"


_GRANTS: Mapping[Permission, Mapping[Role, bool]] = {
    Permission.SUBMIT_TICKETS: {Role.TEACHER: True, Role.ADMIN: False, Role.PRINCIPAL: False},
    Permission.VIEW_TICKETS: {Role.TEACHER: True, Role.ADMIN: True, Role.PRINCIPAL: False},
    Permission.VIEW_ALL_TICKETS: {Role.TEACHER: False, Role.ADMIN: True, Role.PRINCIPAL: True},
    Permission.MANAGE_TICKETS: {Role.TEACHER: False, Role.ADMIN: True, Role.PRINCIPAL: False},
    Permission.VIEW_ANALYTICS: {Role.TEACHER: False, Role.ADMIN: True, Role.PRINCIPAL: True},
    Permission.MANAGE_USERS: {Role.TEACHER: False, Role.ADMIN: True, Role.PRINCIPAL: False},
    Permission.MANAGE_DATA: {Role.TEACHER: False, Role.ADMIN: True, Role.PRINCIPAL: False},
}


def has_permission(role: Role, permission: Permission) -> bool:
    return _GRANTS[permission][Role(role)]


def require_permission(role: Role, permission: Permission, *, action: str | None = None) -> None:
    """Raise :class:`UnauthorizedError` unless ``role`` holds ``permission``."""

    if not has_permission(role, permission):
        raise UnauthorizedError(f"Role '{Role(role).value}' may not {action or permission.value.replace('_', ' ')}")


def ensure_principal(principal: Principal, permission: Permission, *, action: str | None = None) -> Principal:
    require_permission(principal.role, permission, action=action)
    return principal
