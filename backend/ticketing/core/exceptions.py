"""
Domain errors and their HTTP mapping.

Services raise these instead of HTTPException so the same rules apply whether
they are called from a route or directly (tests, scripts). Every error renders
as {"detail": message} plus any extra payload fields.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ticketing.core.logging import get_logger

logger = get_logger(__name__)


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def payload(self) -> dict:
        return {"detail": self.message}


class InvalidInputError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientCapacityError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, available_tickets: int):
        self.available_tickets = available_tickets
        super().__init__(f"Only {available_tickets} tickets available")

    def payload(self) -> dict:
        return {"detail": self.message, "available_tickets": self.available_tickets}


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class EventUnavailableError(NotFoundError):
    def __init__(self, message: str = "Event not found or not available"):
        super().__init__(message)


class TicketNotFoundError(NotFoundError):
    def __init__(self, message: str = "Ticket not found"):
        super().__init__(message)


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class AuthenticationError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.warning(
        "domain_error",
        error=exc.__class__.__name__,
        detail=exc.message,
        status_code=exc.status_code,
    )
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.payload(), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
