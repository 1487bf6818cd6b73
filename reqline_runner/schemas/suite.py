"""
Pydantic schemas for test suites and their endpoints.

Suites are persisted as JSON documents, so these schemas double as the
storage format and the API response format.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


# Execution lifecycle of an endpoint
EndpointStatus = Literal["pending", "running", "completed", "failed"]


class EndpointDraft(BaseModel):
    """Schema for attaching a new endpoint to a suite."""
    title: str = ""
    description: str = ""
    request_line: str


class EndpointUpdate(BaseModel):
    """Schema for editing an endpoint. All fields are optional."""
    title: str | None = None
    description: str | None = None
    request_line: str | None = None


class Endpoint(BaseModel):
    """
    One request line plus the outcome of its last execution.

    ``result`` and ``error_message`` are mutually exclusive: a completed
    endpoint carries a result, a failed one an error message, and a
    pending or running one neither.
    """
    id: str
    title: str = ""
    description: str = ""
    request_line: str
    status: EndpointStatus = "pending"
    result: Any | None = None
    error_message: str | None = None
    created_at: int
    executed_at: int | None = None

    @model_validator(mode="after")
    def check_outcome_exclusive(self) -> "Endpoint":
        if self.result is not None and self.error_message is not None:
            raise ValueError("result and error_message cannot both be set")
        return self


class SuiteCreate(BaseModel):
    """Schema for explicitly creating a new suite."""
    title: str = "API Test Suite"
    description: str = "Test suite for multiple API endpoints"
    base_origin: str | None = None


class SuiteUpdate(BaseModel):
    """Schema for updating suite metadata. All fields are optional."""
    title: str | None = None
    description: str | None = None


class Suite(BaseModel):
    """
    A group of endpoints sharing one base origin.

    ``base_origin`` is empty until the first endpoint is attached; every
    later endpoint must resolve to the same origin.
    """
    id: str
    title: str = "API Test Suite"
    description: str = "Test suite for multiple API endpoints"
    base_origin: str = ""
    endpoints: list[Endpoint] = Field(default_factory=list)
    created_at: int
    updated_at: int
    expires_at: int

    def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        for endpoint in self.endpoints:
            if endpoint.id == endpoint_id:
                return endpoint
        return None

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at


class SuiteResponse(BaseModel):
    """Schema for the current suite together with the batch running flag."""
    suite: Suite | None
    is_running: bool = False
