"""Domain exception to HTTP response mapping."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from soulmark.domain.exceptions import (
    ConflictError,
    NotFoundError,
    OwnershipError,
    PolicyError,
    RegistryError,
    StateError,
    StorageError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_CODES: list[tuple[type[RegistryError], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
    (OwnershipError, status.HTTP_403_FORBIDDEN),
    (PolicyError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (StateError, status.HTTP_409_CONFLICT),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: RegistryError) -> int:
    for error_type, code in STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the registry error handler to the FastAPI app."""

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
        code = status_code_for(exc)
        if exc.retryable:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=code,
            content={"detail": exc.message, "code": exc.code, "retryable": exc.retryable},
        )
