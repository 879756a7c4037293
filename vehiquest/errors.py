"""
This module contains the error taxonomy of the VehiQuest service and its HTTP mapping.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


class VehiQuestError(Exception):
    """
    Base class for errors reported to the caller.

    Attributes:
        status_code (int): HTTP status used when the error reaches a client.
        reason (str): Machine-checkable reason code.
    """
    status_code = 500
    reason = "internal"

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    def to_dict(self) -> dict:
        return {"reason": self.reason, "message": self.message}


class NotFound(VehiQuestError):
    """A vehicle, booking or user id did not resolve."""
    status_code = 404
    reason = "not_found"


class Conflict(VehiQuestError):
    """
    The request collides with committed state: overlapping dates or a vehicle
    that no longer accepts bookings.
    """
    status_code = 409
    reason = "conflict"

    def __init__(self, message: str, reason: str | None = None, dates: list[str] | None = None):
        super().__init__(message, reason)
        self.dates = list(dates or [])

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.dates:
            body["dates"] = self.dates
        return body


class InvalidInput(VehiQuestError):
    """Malformed payload, date list or missing identity fields."""
    status_code = 400
    reason = "invalid_input"


class Unauthorized(VehiQuestError):
    """The caller is not authenticated."""
    status_code = 401
    reason = "unauthorized"


class Forbidden(Unauthorized):
    """The caller lacks the required role or ownership."""
    status_code = 403
    reason = "forbidden"


class Internal(VehiQuestError):
    """A collaborator (store, payment processor) is unavailable. Safe to retry."""
    status_code = 503
    reason = "internal"


async def vehiquest_error_handler(request: Request, exc: VehiQuestError) -> JSONResponse:
    if isinstance(exc, Internal):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def store_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.exception(f"Store unavailable while serving {request.method} {request.url.path}")
    error = Internal("The record store is unavailable", reason="store_unavailable")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_error_handlers(app: FastAPI):
    """
    Installs the handlers that turn service errors into JSON responses.
    """
    app.add_exception_handler(VehiQuestError, vehiquest_error_handler)
    app.add_exception_handler(OperationalError, store_error_handler)
