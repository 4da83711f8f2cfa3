from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from helpdesk.dependencies.auth import CurrentUser, get_user_directory
from helpdesk.errors import UnauthorizedError
from helpdesk.users.models import Principal, Role
from helpdesk.users.service import UserDirectory

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str


class PrincipalResponse(BaseModel):
    username: str
    name: str
    role: Role

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(username=principal.username, name=principal.name, role=principal.role)


@router.post("/login", response_model=PrincipalResponse)
async def login(
    payload: LoginRequest,
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
) -> PrincipalResponse:
    """Check a username/password pair and return the principal it belongs to."""

    try:
        principal = await directory.authenticate(payload.username, payload.password)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return PrincipalResponse.from_principal(principal)


@router.get("/me", response_model=PrincipalResponse)
async def me(user: CurrentUser) -> PrincipalResponse:
    return PrincipalResponse.from_principal(user)
