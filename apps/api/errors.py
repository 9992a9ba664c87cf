# apps/api/errors.py
"""
Domain error kinds raised by the service modules.

Services never build HTTP responses themselves; `register_exception_handlers`
maps each kind to a status code and a JSON body of the form
{"error": <kind>, "message": <description>}.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger("errors")


class VidshareError(Exception):
    status_code = 500
    kind = "server_error"

    def __init__(self, message: str = "An unexpected error occurred", context: Optional[Dict[str, Any]] = None):
        self.message = message
        # logged server-side, never returned to the client
        self.context = context or {}
        super().__init__(message)


class UnauthenticatedError(VidshareError):
    status_code = 401
    kind = "unauthenticated"

    def __init__(self, message: str = "Not authenticated", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)


class UnauthorizedError(VidshareError):
    status_code = 403
    kind = "unauthorized"

    def __init__(self, message: str = "Forbidden", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)


class NotFoundError(VidshareError):
    status_code = 404
    kind = "not_found"

    def __init__(self, resource: str = "resource", resource_id: Optional[Any] = None):
        message = f"No {resource} found"
        if resource_id is not None:
            message = f"No {resource} found with id {resource_id}"
        super().__init__(message, {"resource": resource, "resource_id": str(resource_id)})


class ValidationError(VidshareError):
    status_code = 400
    kind = "validation_error"

    def __init__(self, message: str = "Validation failed", field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class ConflictError(VidshareError):
    status_code = 409
    kind = "conflict"


class InvalidOperationError(VidshareError):
    status_code = 400
    kind = "invalid_operation"


class RateLimitExceededError(VidshareError):
    status_code = 429
    kind = "rate_limit_exceeded"

    def __init__(self, message: str = "Too many requests, try again soon.", retry_after: int = 60):
        super().__init__(message, {"retry_after": retry_after})
        self.retry_after = retry_after


def parse_id(value: str, resource: str) -> uuid.UUID:
    # A malformed id cannot reference an existing row
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(resource, value)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(VidshareError)
    async def handle_vidshare_error(request: Request, exc: VidshareError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s | %s", request.method, request.url.path, exc.message, exc.context)
        else:
            log.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.kind, "message": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        # Malformed or incomplete bodies share the validation_error envelope
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            loc = [str(part) for part in first.get("loc", ()) if part != "body"]
            message = f"{loc[-1]}: {first.get('msg')}" if loc else str(first.get("msg"))
        log.info("%s %s -> validation_error: %s", request.method, request.url.path, message)
        return JSONResponse(
            status_code=400,
            content={"error": ValidationError.kind, "message": message},
        )
