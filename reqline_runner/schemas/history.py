"""
Pydantic schemas for ad-hoc request execution history.
"""

from typing import Literal

from pydantic import BaseModel


class RequestHistoryEntry(BaseModel):
    """One executed request line and its outcome."""
    id: str
    request_line: str
    outcome: Literal["success", "error"]
    http_status: int | None = None
    duration: int | None = None
    error_message: str | None = None
    executed_at: int
    expires_at: int


class RequestHistoryListResponse(BaseModel):
    """Schema for request history list response, newest first."""
    items: list[RequestHistoryEntry]
    total: int
