"""
Custom exceptions and error handlers for consistent error responses.

Every 4xx/5xx response uses the same envelope:

    {"error": str, "message": str, "details": [{"path": str, "message": str}]}

where ``details`` is only present for validation failures.
"""

import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

# Request locations that are stripped from a validation error path
_LOCATION_PREFIXES = ("body", "query", "path", "header")


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        error: str,
        status_code: int = 500,
        details: Optional[List[Dict[str, Any]]] = None
    ):
        self.message = message
        self.error = error
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class RequestValidationFailed(AppException):
    """Raised when an input record violates its schema."""

    def __init__(self, details: List[Dict[str, Any]], message: str = "Invalid request body"):
        super().__init__(
            message=message,
            error="Validation Error",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for missing, invalid or expired credentials."""

    def __init__(self, message: str = "Missing or invalid token"):
        super().__init__(
            message=message,
            error="Unauthorized",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class AuthorizationError(AppException):
    """Raised when an authenticated caller lacks the role or ownership for an action."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            error="Forbidden",
            status_code=status.HTTP_403_FORBIDDEN
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            message=message,
            error="Not Found",
            status_code=status.HTTP_404_NOT_FOUND
        )


class ConflictError(AppException):
    """Raised when a requested state transition is not allowed from the current state."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error="Bad Request",
            status_code=status.HTTP_400_BAD_REQUEST
        )


class UpstreamServiceError(AppException):
    """Raised when the geocoding or directions provider fails."""

    def __init__(self, message: str, provider_status: Optional[str] = None):
        self.provider_status = provider_status
        super().__init__(
            message=message,
            error="Upstream Error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class InternalError(AppException):
    """Raised for unexpected failures that should not leak detail."""

    def __init__(self, message: str = "An internal server error occurred"):
        super().__init__(
            message=message,
            error="Internal Error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


def error_body(error: str, message: str, details: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return body


def validation_details(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Convert pydantic error dicts into ``{path, message}`` entries.

    The path is the dotted field location, e.g. ``stops.0.address``.
    """
    details = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        details.append({
            "path": ".".join(str(part) for part in loc),
            "message": err.get("msg", "Invalid value"),
        })
    return details


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error, exc.message, exc.details)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error name
    error_map = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        500: "Internal Error"
    }

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error_map.get(exc.status_code, "Error"), str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors, reported as 400 with every violation."""
    errors = exc.errors()
    from_body = any((err.get("loc") or ("body",))[0] == "body" for err in errors)
    failure = RequestValidationFailed(
        details=validation_details(errors),
        message="Invalid request body" if from_body else "Invalid request"
    )
    return await app_exception_handler(request, failure)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    failure = InternalError()
    return JSONResponse(
        status_code=failure.status_code,
        content=error_body(failure.error, failure.message)
    )
