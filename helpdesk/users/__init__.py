"""Users, roles and the identity provider."""

from .models import Principal, Role, User
from .permissions import Permission, has_permission, require_permission

__all__ = [
    "Principal",
    "Role",
    "User",
    "Permission",
    "has_permission",
    "require_permission",
]
