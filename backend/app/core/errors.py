"""
Service errors and their HTTP mapping.

Every error response body is a JSON object with a ``message`` key, plus an
``errors`` list for validation failures. Unexpected exceptions are logged
in full and reported to the client as a generic 500.
"""

from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.core.logging import get_logger

logger = get_logger(__name__)


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 400

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        errors: Optional[List[Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors


class ValidationError(ServiceError):
    """Malformed or missing input (400)."""
    status_code = 400


class ConflictError(ServiceError):
    """Duplicate unique value such as an email or group name (400)."""
    status_code = 400


class AuthenticationError(ServiceError):
    """Missing, invalid or expired credentials (401)."""
    status_code = 401


class ForbiddenError(ServiceError):
    """Authenticated but not allowed (403)."""
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


def error_response(status_code: int, message: str, errors: Optional[List[Any]] = None) -> JSONResponse:
    content: dict = {"message": message}
    if errors is not None:
        content["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that shape every error body."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        logger.warning(
            f"{request.method} {request.url.path} rejected: {exc.message}",
            extra={"extra_data": {"status_code": exc.status_code, "error": type(exc).__name__}},
        )
        return error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"path": list(err.get("loc", ())), "message": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return error_response(400, "Validation error", errors)

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error: {request.method} {request.url.path}",
            extra={"extra_data": {"error_type": type(exc).__name__}},
            exc_info=exc,
        )
        return error_response(500, "Internal server error")
