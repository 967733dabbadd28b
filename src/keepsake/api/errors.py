"""Translate service-layer exceptions into HTTP responses."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from keepsake.services.exceptions import (
    AuthenticationFailedError,
    AuthorizationFailedError,
    DownloadFailedError,
    InvalidIndexError,
    InvalidURLError,
    KeepsakeError,
    NotFoundError,
    StoreFailureError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
STATUS_BY_ERROR: list[tuple[type[KeepsakeError], int]] = [
    (InvalidURLError, status.HTTP_400_BAD_REQUEST),
    (InvalidIndexError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationFailedError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationFailedError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DownloadFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StoreFailureError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]

INTERNAL_ERROR_DETAIL = "Internal server error"


def status_for(exc: KeepsakeError) -> int:
    """HTTP status code for a service-layer exception."""
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def keepsake_error_handler(_request: Request, exc: KeepsakeError) -> JSONResponse:
    """Render a service-layer exception as `{"detail": ...}`."""
    status_code = status_for(exc)
    headers = None
    detail = str(exc)

    if isinstance(exc, AuthorizationFailedError):
        logger.info("Authorization failed: %s", exc)
        detail = "Invalid or expired token"
        headers = {"WWW-Authenticate": "Bearer"}
    elif status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        # Log full details server-side only
        logger.error("Request failed: %s", exc, exc_info=exc)
        detail = INTERNAL_ERROR_DETAIL

    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


async def validation_error_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed request bodies and parameters as 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors reduced to location, message and type."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that translate service failures for every route."""
    app.add_exception_handler(KeepsakeError, keepsake_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
