"""Error taxonomy for the booking service and its FastAPI handlers."""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class BookingSystemError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"

    def __init__(self, message: str, **extra):
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.extra}


class ValidationError(BookingSystemError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str = None):
        super().__init__(message, **({"field": field} if field else {}))
        self.field = field


class InvalidDateRange(ValidationError):
    code = "INVALID_DATE_RANGE"

    def __init__(self, message: str):
        super().__init__(message, field="date")


class NotFound(BookingSystemError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class Conflict(BookingSystemError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class SeatUnavailable(Conflict):
    code = "SEAT_UNAVAILABLE"

    def __init__(self, seat_number: str, reason: str = "is already booked"):
        super().__init__(f"Seat {seat_number} {reason}", seat_number=seat_number)
        self.seat_number = seat_number


class AlreadyCancelled(Conflict):
    code = "ALREADY_CANCELLED"

    def __init__(self, ticket_id: str):
        super().__init__("Ticket already cancelled", ticket_id=ticket_id)


class DuplicateUser(Conflict):
    code = "USER_EXISTS"


class AuthError(BookingSystemError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_ERROR"

    def __init__(self, message: str, expired: bool = False):
        super().__init__(message, expired=expired)
        self.expired = expired


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__("Invalid credentials")


class InternalError(BookingSystemError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"


async def booking_error_handler(request: Request, exc: BookingSystemError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.opt(exception=exc).error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Schema failures (bad email, wrong types) answer like every other ValidationError
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    error = ValidationError(first.get("msg", "Invalid request"), field=location[-1] if location else None)
    logger.warning(f"{request.method} {request.url.path} -> 400 {error.code}: {errors}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": InternalError.code},
    )


EXCEPTION_HANDLERS = {
    BookingSystemError: booking_error_handler,
    RequestValidationError: request_validation_error_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app):
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
