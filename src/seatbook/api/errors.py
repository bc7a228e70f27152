"""Mapping of service errors to HTTP responses."""

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from seatbook.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConcurrencyConflictError,
    InsufficientSeatsError,
    NotFoundError,
    PersistenceError,
    SeatbookError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins.
STATUS_BY_ERROR: list[tuple[type[SeatbookError], int]] = [
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InsufficientSeatsError, 409),
    (StateError, 409),
    (ValidationError, 422),
    (ConcurrencyConflictError, 503),
    (PersistenceError, 503),
]

REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def status_for(error: SeatbookError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def user_message(error: SeatbookError) -> str:
    if isinstance(error, InsufficientSeatsError):
        return (
            f"Only {error.available} seat(s) left but {error.requested} requested; "
            "reduce the number of seats or pick another ride"
        )
    if isinstance(error, ConcurrencyConflictError):
        return "The ride is busy right now; please try again"
    return error.message


async def seatbook_error_handler(request: Request, exc: SeatbookError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    response = JSONResponse(
        status_code=status,
        content={
            "error": user_message(exc),
            "code": type(exc).__name__,
            "details": exc.details,
        },
    )
    if status == 503:
        response.headers["retry-after"] = "1"
    if status == 401:
        response.headers["www-authenticate"] = "Bearer"
    return response


def field_name(error: dict[str, Any]) -> str:
    """``("body", "seats")`` -> ``"seats"``; a body that failed to parse is ``"body"``."""
    if error.get("type") == "json_invalid":
        return "body"
    parts = [str(part) for part in error.get("loc", ())]
    if len(parts) > 1 and parts[0] in REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts) or "request"


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report FastAPI's schema failures in the same shape as service validation errors."""
    problems = [
        {"field": field_name(error), "message": error.get("msg", "")}
        for error in exc.errors()
    ]
    first = problems[0] if problems else {"field": "request", "message": "Invalid request"}
    error = ValidationError(
        f"{first['field']}: {first['message']}",
        details={"field": first["field"], "errors": problems},
    )
    return await seatbook_error_handler(request, error)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SeatbookError, seatbook_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_error_handler  # type: ignore[arg-type]
    )
