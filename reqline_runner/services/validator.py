"""
Input validation for request lines, URLs and JSON payloads.

All validators are pure functions returning a ValidationResult; parser
exceptions never escape to the caller.
"""

import json
from enum import Enum
from urllib.parse import urlsplit

from pydantic import BaseModel


# Input limits
MAX_REQUEST_LINE_LENGTH = 10_000  # characters
MAX_URL_LENGTH = 2_048  # characters
MAX_HEADERS_SIZE = 8_192  # bytes
MAX_BODY_SIZE = 1_048_576  # bytes

ALLOWED_SCHEMES = ("http", "https")


class ValidationCode(str, Enum):
    """Reason a value failed validation."""
    REQUIRED = "required"
    TOO_LONG = "too_long"
    EMPTY = "empty"
    INVALID_FORMAT = "invalid_format"
    DISALLOWED_SCHEME = "disallowed_scheme"


class ValidationResult(BaseModel):
    """Outcome of a validation check."""
    valid: bool
    code: ValidationCode | None = None
    reason: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, code: ValidationCode, reason: str) -> "ValidationResult":
        return cls(valid=False, code=code, reason=reason)


def validate_request_line_length(text: str | None) -> ValidationResult:
    """
    Validate the size of a request line.

    Example:
        >>> validate_request_line_length("   ").reason
        'Reqline cannot be empty'
    """
    if not text or not isinstance(text, str):
        return ValidationResult.fail(ValidationCode.REQUIRED, "Reqline input is required")

    if len(text) > MAX_REQUEST_LINE_LENGTH:
        return ValidationResult.fail(
            ValidationCode.TOO_LONG,
            f"Reqline too long. Maximum length is {MAX_REQUEST_LINE_LENGTH} characters"
        )

    if not text.strip():
        return ValidationResult.fail(ValidationCode.EMPTY, "Reqline cannot be empty")

    return ValidationResult.ok()


def validate_url(url: str | None) -> ValidationResult:
    """Validate that a URL is absolute, reasonably short and uses http(s)."""
    if not url or not isinstance(url, str):
        return ValidationResult.fail(ValidationCode.REQUIRED, "URL is required")

    if len(url) > MAX_URL_LENGTH:
        return ValidationResult.fail(
            ValidationCode.TOO_LONG,
            f"URL too long. Maximum length is {MAX_URL_LENGTH} characters"
        )

    try:
        parts = urlsplit(url.strip())
        # Accessing .port validates the port component
        parts.port
    except ValueError:
        return ValidationResult.fail(ValidationCode.INVALID_FORMAT, "Invalid URL format")

    if not parts.scheme or not (parts.netloc or parts.path):
        return ValidationResult.fail(ValidationCode.INVALID_FORMAT, "Invalid URL format")

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return ValidationResult.fail(
            ValidationCode.DISALLOWED_SCHEME,
            "Only HTTP and HTTPS protocols are allowed"
        )

    if not parts.hostname:
        return ValidationResult.fail(ValidationCode.INVALID_FORMAT, "Invalid URL format")

    return ValidationResult.ok()


def validate_json(text: str | None) -> ValidationResult:
    """Validate that a string parses as JSON."""
    if not text or not isinstance(text, str):
        return ValidationResult.fail(ValidationCode.REQUIRED, "JSON string is required")

    try:
        json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return ValidationResult.fail(ValidationCode.INVALID_FORMAT, "Invalid JSON format")

    return ValidationResult.ok()


def _validate_json_payload(text: str | None, limit: int, label: str) -> ValidationResult:
    result = validate_json(text)
    if not result.valid:
        return result

    if len(text.encode("utf-8")) > limit:
        return ValidationResult.fail(
            ValidationCode.TOO_LONG,
            f"{label} too large. Maximum size is {limit} bytes"
        )

    return ValidationResult.ok()


def validate_headers(text: str | None) -> ValidationResult:
    """Validate a HEADERS directive payload (JSON, at most 8 KiB)."""
    return _validate_json_payload(text, MAX_HEADERS_SIZE, "Headers")


def validate_body(text: str | None) -> ValidationResult:
    """Validate a BODY directive payload (JSON, at most 1 MiB)."""
    return _validate_json_payload(text, MAX_BODY_SIZE, "Body")
