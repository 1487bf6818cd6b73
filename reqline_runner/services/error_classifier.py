"""
Safe error messages for failures surfaced to the user.

Raw failures (strings, exceptions, remote error responses, decoded JSON
error shapes) are normalized into one of a small set of failure variants
and then mapped to a sanitized message that never echoes credentials.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

import httpx

from ..exceptions import APIException, HttpStatusError
from .sanitizer import sanitize


AUTH_ERROR_MESSAGE = "An authentication error occurred. Please check your credentials."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
NETWORK_MESSAGE = "Network error. Please check your connection and try again."
REQUEST_FAILED_MESSAGE = "Request failed. Please check your input and try again."
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again."

STATUS_MESSAGES = {
    400: "Invalid request format. Please check your Reqline syntax.",
    401: "Authentication required. Please check your credentials.",
    403: "Access denied. You don't have permission to perform this action.",
    404: "API endpoint not found. Please check the URL.",
    429: "Too many requests. Please wait a moment before trying again.",
    500: "Server error. Please try again later.",
    502: "Bad gateway. The server is temporarily unavailable.",
    503: "Service unavailable. Please try again later.",
    504: "Gateway timeout. The request took too long to process.",
}

# Backend fields carrying a human readable message, in order of preference
BACKEND_MESSAGE_FIELDS = ("message", "error", "detail")

SENSITIVE_PATTERN = re.compile(r"password|token|key|secret|api_key", re.IGNORECASE)
TIMEOUT_PATTERN = re.compile(r"timeout", re.IGNORECASE)
NETWORK_PATTERN = re.compile(r"network|connection", re.IGNORECASE)
STATUS_FAILURE_PATTERN = re.compile(r"request failed with status code", re.IGNORECASE)


@dataclass(frozen=True)
class StringError:
    """A failure reported as a bare string."""
    text: str


@dataclass(frozen=True)
class MessageError:
    """A failure carrying a message but no remote response."""
    message: str


@dataclass(frozen=True)
class HttpError:
    """A failure carrying the remote response status and decoded body."""
    status: int | None
    data: Any = field(default=None)


@dataclass(frozen=True)
class UnknownError:
    """A failure of unrecognized shape."""
    value: Any = field(default=None, repr=False)


Failure = Union[StringError, MessageError, HttpError, UnknownError]


def _decode_response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _backend_message(data: Any) -> str | None:
    if isinstance(data, Mapping):
        for field_name in BACKEND_MESSAGE_FIELDS:
            value = data.get(field_name)
            if isinstance(value, str):
                return value
    return None


def _from_mapping(error: Mapping) -> Failure:
    response = error.get("response")
    if isinstance(response, Mapping):
        status = response.get("status", response.get("status_code"))
        data = response.get("data")
        if isinstance(status, int) or _backend_message(data) is not None:
            return HttpError(
                status=status if isinstance(status, int) else None,
                data=data
            )

    message = error.get("message")
    if isinstance(message, str):
        return MessageError(message=message)

    return UnknownError(value=error)


def to_failure(error: Any) -> Failure:
    """
    Normalize a raw failure into a failure variant.

    Args:
        error: A string, exception, mapping, or an existing variant

    Returns:
        The matching StringError, MessageError, HttpError or UnknownError
    """
    if isinstance(error, (StringError, MessageError, HttpError, UnknownError)):
        return error

    if isinstance(error, str):
        return StringError(text=error)

    if isinstance(error, HttpStatusError):
        return HttpError(status=error.http_status, data=error.data)

    if isinstance(error, httpx.HTTPStatusError):
        return HttpError(
            status=error.response.status_code,
            data=_decode_response_body(error.response)
        )

    if isinstance(error, APIException):
        return MessageError(message=error.detail)

    if isinstance(error, BaseException):
        message = str(error)
        if message:
            return MessageError(message=message)
        return UnknownError(value=error)

    if isinstance(error, Mapping):
        return _from_mapping(error)

    return UnknownError(value=error)


def _describe_http_error(failure: HttpError) -> str:
    backend_message = _backend_message(failure.data)
    if backend_message is not None:
        return sanitize(backend_message)

    if failure.status is None:
        return UNEXPECTED_MESSAGE

    if failure.status in STATUS_MESSAGES:
        return STATUS_MESSAGES[failure.status]

    return f"Request failed with status code {failure.status}"


def _describe_message_error(failure: MessageError) -> str:
    message = failure.message

    if SENSITIVE_PATTERN.search(message):
        return AUTH_ERROR_MESSAGE

    if TIMEOUT_PATTERN.search(message):
        return TIMEOUT_MESSAGE

    if NETWORK_PATTERN.search(message):
        return NETWORK_MESSAGE

    if STATUS_FAILURE_PATTERN.search(message):
        return REQUEST_FAILED_MESSAGE

    return sanitize(message)


def classify(error: Any) -> str:
    """
    Produce a safe, user-presentable message for a raw failure.

    Example:
        >>> classify({"message": "invalid api_key"})
        'An authentication error occurred. Please check your credentials.'
        >>> classify({"response": {"status": 404}})
        'API endpoint not found. Please check the URL.'
    """
    failure = to_failure(error)

    if isinstance(failure, HttpError):
        return _describe_http_error(failure)
    if isinstance(failure, MessageError):
        return _describe_message_error(failure)
    if isinstance(failure, StringError):
        return sanitize(failure.text)
    return UNEXPECTED_MESSAGE
