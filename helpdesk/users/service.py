from __future__ import annotations

import logging
from dataclasses import dataclass

from helpdesk.errors import UnauthorizedError, UserNotFoundError, ValidationError

from .models import Principal, Role, User
from .permissions import Permission, ensure_principal
from .repository import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "password"

DEFAULT_USERS: tuple[User, ...] = (
    User(username="admin", password=DEFAULT_PASSWORD, name="IT Admin", role=Role.ADMIN),
    User(username="admin2", password=DEFAULT_PASSWORD, name="Second IT Admin", role=Role.ADMIN),
    User(username="jdoe", password=DEFAULT_PASSWORD, name="John Doe", role=Role.TEACHER),
    User(username="principal", password=DEFAULT_PASSWORD, name="School Principal", role=Role.PRINCIPAL),
)


@dataclass(slots=True)
class UserDirectory:
    """Identity provider and user administration."""

    repository: UserRepository

    async def seed_defaults(self, users: tuple[User, ...] = DEFAULT_USERS) -> bool:
        if await self.repository.is_seeded():
            return False
        await self.repository.replace_all(users)
        logger.info("Seeded %d default users", len(users))
        return True

    async def authenticate(self, username: str, password: str) -> Principal:
        """Plain credential lookup returning the role-tagged principal."""

        user = await self.repository.get(username)
        if user is None or user.password != password:
            logger.warning("Failed login for %s", username)
            raise UnauthorizedError("Invalid username or password")
        return user.to_principal()

    async def get_user(self, username: str) -> User:
        user = await self.repository.get(username)
        if user is None:
            raise UserNotFoundError(f"User '{username}' not found")
        return user

    async def list_users(self, actor: Principal) -> list[User]:
        ensure_principal(actor, Permission.MANAGE_USERS, action="list users")
        return await self.repository.list()

    async def list_admins(self) -> list[User]:
        return [user for user in await self.repository.list() if user.role is Role.ADMIN]

    async def create_user(
        self,
        actor: Principal,
        *,
        username: str | None,
        name: str | None,
        role: Role | str | None,
        password: str | None = DEFAULT_PASSWORD,
    ) -> User:
        ensure_principal(actor, Permission.MANAGE_USERS, action="create users")
        values = {"username": username, "password": password, "name": name, "role": role}
        missing = [key for key, value in values.items() if not str(value or "").strip()]
        if missing:
            raise ValidationError.missing(missing)
        try:
            parsed_role = Role(role)
        except ValueError as exc:
            allowed = ", ".join(member.value for member in Role)
            raise ValidationError(f"Invalid role '{role}'; expected one of: {allowed}") from exc

        user = User(
            username=str(username).strip(),
            password=str(password),
            name=str(name).strip(),
            role=parsed_role,
        )
        await self.repository.add(user)
        logger.info("User %s (%s) created by %s", user.username, user.role, actor.username)
        return user
