# Services package

from .sanitizer import sanitize, sanitize_deep
from .validator import (
    validate_request_line_length,
    validate_url,
    validate_json,
    validate_headers,
    validate_body,
)
from .rate_limiter import RateLimiter, RateLimitDecision
from .error_classifier import classify
from .request_line import extract_url, extract_origin
from .storage import SqlStorage
from .suite_store import SuiteStore
from .reqline_client import ReqlineClient
from .execution_engine import ExecutionEngine
from .suite_export import export_markdown

__all__ = [
    "sanitize",
    "sanitize_deep",
    "validate_request_line_length",
    "validate_url",
    "validate_json",
    "validate_headers",
    "validate_body",
    "RateLimiter",
    "RateLimitDecision",
    "classify",
    "extract_url",
    "extract_origin",
    "SqlStorage",
    "SuiteStore",
    "ReqlineClient",
    "ExecutionEngine",
    "export_markdown",
]
