from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Supported roles."""

    TEACHER = "teacher"
    ADMIN = "admin"
    PRINCIPAL = "principal"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller as returned by the identity provider."""

    username: str
    name: str
    role: Role


@dataclass(frozen=True, slots=True)
class User:
    """Stored user account. The password is an opaque credential compared verbatim."""

    username: str
    password: str
    name: str
    role: Role

    def to_principal(self) -> Principal:
        return Principal(username=self.username, name=self.name, role=self.role)
