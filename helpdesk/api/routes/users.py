from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from helpdesk.dependencies.auth import get_user_directory
from helpdesk.dependencies.tickets import AdminUser
from helpdesk.users.models import Role, User
from helpdesk.users.service import DEFAULT_PASSWORD, UserDirectory

router = APIRouter(prefix="/users", tags=["users"])

UserDirectoryDep = Annotated[UserDirectory, Depends(get_user_directory)]


class UserCreateRequest(BaseModel):
    username: str = ""
    name: str = ""
    password: str = Field(default=DEFAULT_PASSWORD)
    role: str = Role.TEACHER.value


class UserResponse(BaseModel):
    username: str
    name: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(username=user.username, name=user.name, role=user.role)


@router.get("", response_model=list[UserResponse])
async def list_users(directory: UserDirectoryDep, user: AdminUser) -> list[UserResponse]:
    return [UserResponse.from_user(item) for item in await directory.list_users(user)]


@router.get("/admins", response_model=list[UserResponse])
async def list_admins(directory: UserDirectoryDep, _: AdminUser) -> list[UserResponse]:
    return [UserResponse.from_user(item) for item in await directory.list_admins()]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, directory: UserDirectoryDep, user: AdminUser) -> UserResponse:
    created = await directory.create_user(
        user,
        username=payload.username,
        name=payload.name,
        role=payload.role,
        password=payload.password,
    )
    return UserResponse.from_user(created)
