"""
Pydantic schemas for request line execution.

Defines schemas for executing ad-hoc request lines and returning results.
"""

from typing import Any

from pydantic import BaseModel


class ExecuteRequest(BaseModel):
    """Schema for executing a request line without saving it."""
    request_line: str


class ExecuteResponse(BaseModel):
    """
    Schema for request line execution response.

    Exactly one of ``result`` (the sanitized payload returned by the
    execution API) and ``error_message`` (a safe error message) is set.
    """
    success: bool
    result: Any | None = None
    error_message: str | None = None
    executed_at: int
