"""Application exceptions and their HTTP translation.

Services raise these; routes let them propagate and the handlers registered
by :func:`register_exception_handlers` turn them into JSON bodies of the form
``{"error": ..., "message": ..., "details": ...}``. Internal details are only
ever logged.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class YarnstashError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


class UnauthorizedError(YarnstashError):
    """No valid identity on a request that requires one."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthorized"

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class NotFoundError(YarnstashError):
    """Entity absent, or owned by somebody else.

    The two cases produce the same message on purpose.
    """

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"

    def __init__(self, resource: str = "resource", resource_id: str | None = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            f"{resource.capitalize()} not found",
            {"resource": resource},
        )


class ValidationError(YarnstashError):
    """Payload violates a field constraint."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if field:
            ctx["field"] = field
        self.field = field
        super().__init__(message, ctx)


class ConflictError(YarnstashError):
    """An association replacement could not be applied atomically."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "conflict"


class InternalError(YarnstashError):
    """Unanticipated failure; the cause is logged, never returned."""


def _error_body(error: str, message: str, details: dict[str, Any] | None = None):
    body: dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    return body


def _field_from_location(loc: tuple[Any, ...] | list[Any]) -> str | None:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or None


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers translating exceptions into JSON error responses."""

    @app.exception_handler(YarnstashError)
    async def handle_app_error(request: Request, exc: YarnstashError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s %s",
                request.method,
                request.url.path,
                exc.message,
                exc.context,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_body("internal_error", "Internal server error"),
            )

        details: dict[str, Any] | None = None
        if isinstance(exc, ValidationError):
            details = exc.context
        elif exc.status_code == status.HTTP_400_BAD_REQUEST and exc.context:
            details = exc.context

        if exc.status_code == status.HTTP_400_BAD_REQUEST:
            logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = _field_from_location(first.get("loc", ()))
        message = first.get("msg", "Validation failed")
        if field:
            message = f"Invalid value for {field}: {message}"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(
                "validation_error",
                message,
                {"field": field} if field else None,
            ),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("internal_error", "Internal server error"),
        )
