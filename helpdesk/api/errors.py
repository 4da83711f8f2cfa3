from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from helpdesk.errors import (
    ConflictError,
    DuplicateKeyError,
    HelpdeskError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: tuple[tuple[type[HelpdeskError], int], ...] = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateKeyError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
)


def status_code_for(exc: HelpdeskError) -> int:
    for error_type, code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def helpdesk_error_handler(request: Request, exc: HelpdeskError) -> JSONResponse:
    code = status_code_for(exc)
    content: dict[str, object] = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, ValidationError) and exc.missing_fields:
        content["missingFields"] = list(exc.missing_fields)
    logger.debug("%s %s -> %s: %s", request.method, request.url.path, code, exc)
    return JSONResponse(status_code=code, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HelpdeskError, helpdesk_error_handler)
