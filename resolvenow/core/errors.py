"""Error taxonomy and FastAPI exception handlers.

Every handler-level failure is raised as an ``AppError`` subclass and rendered
as ``{"error": ..., "code": ...}`` with an optional ``details`` list. Case
authorization failures are raised as ``NotFound`` so callers cannot probe for
case existence.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from resolvenow.core.config import settings
from resolvenow.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to HTTP callers."""

    status_code = 500
    default_code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class AuthenticationRequired(AppError):
    status_code = 401
    default_code = "AUTHENTICATION_REQUIRED"
    default_message = "Authentication required"


class AuthorizationDenied(AppError):
    status_code = 403
    default_code = "ACCESS_DENIED"
    default_message = "Access denied"


class ValidationFailed(AppError):
    status_code = 400
    default_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class Conflict(AppError):
    status_code = 409
    default_code = "CONFLICT"
    default_message = "Resource was modified concurrently, reload and retry"


class NotFound(AppError):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Not found"


class TransientStoreError(AppError):
    status_code = 503
    default_code = "STORE_UNAVAILABLE"
    default_message = "Storage temporarily unavailable, please retry"


class ProtocolError(Exception):
    """Malformed or out-of-order duplex channel message."""

    def __init__(self, message: str, *, close_code: int = 4400):
        self.message = message
        self.close_code = close_code
        super().__init__(message)


def case_not_found() -> NotFound:
    return NotFound("Case not found", code="CASE_NOT_FOUND")


# =============================================================================
# Handlers
# =============================================================================

async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed: %s",
            exc.message,
            extra=build_log_context(route=request.url.path, method=request.method),
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    body = ValidationFailed(details=jsonable_encoder(details)).to_dict()
    return JSONResponse(status_code=400, content=body)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    body: dict[str, Any] = {"error": "Internal server error", "code": "INTERNAL_ERROR"}
    if settings.ENV == "dev":
        body["details"] = [{"message": str(exc)}]
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
