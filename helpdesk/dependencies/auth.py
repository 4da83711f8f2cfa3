from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from helpdesk.errors import UnauthorizedError
from helpdesk.users.models import Principal, Role
from helpdesk.users.service import UserDirectory

basic_scheme = HTTPBasic(auto_error=False)

_CHALLENGE = {"WWW-Authenticate": "Basic"}


async def get_user_directory(request: Request) -> UserDirectory:
    directory = getattr(request.app.state, "user_directory", None)
    if directory is None:
        raise HTTPException(status_code=503, detail="User directory is not configured")
    return directory


async def get_current_user(
    credentials: Annotated[HTTPBasicCredentials | None, Security(basic_scheme)],
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
) -> Principal:
    """Resolve the caller from HTTP Basic credentials on every request.

    There are no sessions or tokens; the identity provider is asked each time.
    """

    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required", headers=_CHALLENGE)
    try:
        return await directory.authenticate(credentials.username, credentials.password)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=401, detail=str(exc), headers=_CHALLENGE) from exc


def role_required(*roles: Role) -> Callable[[Principal], Principal]:
    """Dependency factory ensuring the current user holds one of ``roles``."""

    async def dependency(user: Annotated[Principal, Depends(get_current_user)]) -> Principal:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


CurrentUser = Annotated[Principal, Depends(get_current_user)]
