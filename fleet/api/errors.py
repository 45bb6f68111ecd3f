"""
Maps the core error taxonomy onto HTTP.

Every ``FleetError`` is rendered as::

    {"error_code": "...", "message": "...", "details": {...}}
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fleet.domain.errors import (
    ConflictError,
    FleetError,
    InvalidTransition,
    NoRouteFound,
    NotFoundError,
    PermissionDenied,
    StorageUnavailable,
    ValidationError,
)

# Most specific first; the first match wins.
STATUS_CODES: list[tuple[type[FleetError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (StorageUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (NoRouteFound, status.HTTP_404_NOT_FOUND),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
]


def status_code_for(exc: FleetError) -> int:
    for error_type, code in STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def fleet_error_handler(request: Request, exc: FleetError) -> JSONResponse:
    code = status_code_for(exc)
    headers = None
    if code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": "1"}
    return JSONResponse(
        status_code=code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": ValidationError.error_code,
            "message": "Request validation failed",
            "details": {"errors": jsonable_errors(exc)},
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ``ctx`` may carry exception instances and ``input`` may hold NaN or
    # infinity; neither is JSON serialisable
    return [
        {key: value for key, value in error.items() if key not in ("ctx", "input")}
        for error in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FleetError, fleet_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
