"""
Error taxonomy for the complaint desk.

Every error is an ``HTTPException`` with a fixed status code, so it can be
raised from services and dependencies alike. ``register_exception_handlers``
renders all of them, plus framework errors, as ``{"message": ...}``.
"""
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("complaint_desk.errors")


class ComplaintDeskError(HTTPException):
    """Base class for errors surfaced to the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message=None, headers=None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers,
        )


class ValidationError(ComplaintDeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(ComplaintDeskError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"

    def __init__(self, message=None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidCredentials(ComplaintDeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid email or password"


class Forbidden(ComplaintDeskError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden: You don't have permission to access this resource"


class NotFound(ComplaintDeskError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(ComplaintDeskError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class InvalidState(ComplaintDeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in the current state"


class ServerFault(ComplaintDeskError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server configuration error"


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "invalid value"))
    return "; ".join(parts) or ValidationError.default_message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error("%s %s - %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
        else:
            logger.warning("%s %s - %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        message = _format_validation_errors(exc)
        logger.warning("%s %s - 400: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )
