"""
Custom exception classes and error handling for Reqline Runner.

Provides consistent error responses across all API endpoints.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""
    detail: str
    error_code: str | None = None


class APIException(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)


class ResourceNotFoundError(APIException):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            detail=f"{resource_type} with id {resource_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND"
        )


class ValidationError(APIException):
    """Exception raised when user input fails validation."""

    def __init__(self, detail: str, code: str | None = None):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR"
        )
        self.code = code


class OriginExtractionError(APIException):
    """Exception raised when a request line has no usable URL directive."""

    def __init__(self, detail: str = "Could not extract base URL from reqline syntax"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="ORIGIN_EXTRACTION_FAILED"
        )


class OriginMismatchError(APIException):
    """Exception raised when an endpoint's origin differs from its suite's."""

    def __init__(self, suite_origin: str, endpoint_origin: str):
        super().__init__(
            detail=(
                "Different base URLs cannot be mixed in the same test suite. "
                f"Current suite uses: {suite_origin}, but this endpoint uses: {endpoint_origin}"
            ),
            status_code=status.HTTP_409_CONFLICT,
            error_code="ORIGIN_MISMATCH"
        )
        self.suite_origin = suite_origin
        self.endpoint_origin = endpoint_origin


class RateLimitError(APIException):
    """Exception raised when the local rate limiter rejects a call."""

    def __init__(self, retry_after: int):
        super().__init__(
            detail=f"Too many requests. Please wait {retry_after} seconds before trying again.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="RATE_LIMITED"
        )
        self.retry_after = retry_after


class NetworkError(APIException):
    """Exception raised when a network error occurs during request execution."""

    def __init__(self, detail: str = "Network connection failed"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="NETWORK_ERROR"
        )


class TimeoutError(APIException):
    """Exception raised when a request times out."""

    def __init__(self, detail: str = "Request timed out"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            error_code="TIMEOUT"
        )


class HttpStatusError(APIException):
    """Exception raised when the execution API answers with an error status."""

    def __init__(self, http_status: int, data: Any = None):
        super().__init__(
            detail=f"Request failed with status code {http_status}",
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="UPSTREAM_HTTP_ERROR"
        )
        self.http_status = http_status
        self.data = data


class StorageError(APIException):
    """Exception raised when the durable store cannot be read or written."""

    def __init__(self, detail: str = "Storage error occurred"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="STORAGE_ERROR"
        )


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handler for custom API exceptions."""
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers=headers
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    errors = exc.errors()
    # Format validation errors into a readable message
    error_messages = []
    for error in errors:
        loc = " -> ".join(str(l) for l in error["loc"])
        msg = error["msg"]
        error_messages.append(f"{loc}: {msg}")

    detail = "; ".join(error_messages) if error_messages else "Validation error"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": detail, "error_code": "VALIDATION_ERROR"}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
