"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    AlreadyBilledError,
    LedgerInternalError,
    LockTimeoutError,
    NotFoundError,
    OwnerInUseError,
)

logger = logging.getLogger(__name__)


def _json(request: Request, status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details, request_id).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _json(request, 404, ErrorCodes.NOT_FOUND, str(exc))

    @app.exception_handler(AlreadyBilledError)
    async def already_billed_handler(request: Request, exc: AlreadyBilledError):
        return _json(
            request,
            409,
            ErrorCodes.ALREADY_BILLED,
            str(exc),
            {"reservation_id": str(exc.reservation_id), "invoice_number": exc.invoice_number},
        )

    @app.exception_handler(OwnerInUseError)
    async def owner_in_use_handler(request: Request, exc: OwnerInUseError):
        return _json(request, 409, ErrorCodes.OWNER_IN_USE, str(exc), {"property_count": exc.property_count})

    @app.exception_handler(LockTimeoutError)
    async def lock_timeout_handler(request: Request, exc: LockTimeoutError):
        return _json(request, 503, ErrorCodes.LOCK_TIMEOUT, "Billing is busy for this reservation or owner; retry")

    @app.exception_handler(LedgerInternalError)
    async def ledger_internal_handler(request: Request, exc: LedgerInternalError):
        logger.error("Ledger internal error: %s", exc)
        return _json(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _json(request, 404, ErrorCodes.NOT_FOUND, message)
        return _json(request, 400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _json(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
