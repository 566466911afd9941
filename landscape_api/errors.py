"""
Application error taxonomy and FastAPI exception handlers.

Every error that reaches a client is one of the classes below and is rendered
as {"error": <safe message>, "code": <code>}. Anything else is logged with its
traceback and returned as a generic 500.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    code = "internal_error"
    message = "Internal server error"

    def __init__(self, message: str | None = None, **extra):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.extra}


class ValidationFailed(AppError):
    status_code = 400
    code = "validation_error"
    message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class SlotConflictError(AppError):
    status_code = 409
    code = "slot_conflict"
    message = "This time slot is already booked"


class DuplicateBookingError(AppError):
    status_code = 409
    code = "duplicate_booking"
    message = "A booking with this id already exists"


class InvalidTransitionError(AppError):
    status_code = 409
    code = "invalid_transition"
    message = "Invalid booking status transition"


class StoreUnavailableError(AppError):
    status_code = 500
    code = "store_unavailable"
    message = "Booking storage is temporarily unavailable"


class PaymentError(AppError):
    status_code = 502
    code = "payment_failed"
    message = "Payment could not be processed"


class PaymentUnavailableError(AppError):
    status_code = 503
    code = "payment_unavailable"
    message = "Payment processing is not configured"


async def app_error_handler(request: Request, exc: AppError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report the first failing field as a 400 instead of FastAPI's default 422"""
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    message = "Invalid request"
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        if first.get("type") == "missing":
            message = f"{field} is required"
        else:
            message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg")
    return JSONResponse(status_code=400, content={"error": message, "code": ValidationFailed.code})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"💥 Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500, content={"error": AppError.message, "code": AppError.code}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
