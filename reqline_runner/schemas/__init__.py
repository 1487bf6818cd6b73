"""
Pydantic schemas package.

Exports all schemas for API request/response validation and persistence.
"""

from .suite import (
    EndpointStatus,
    EndpointDraft,
    EndpointUpdate,
    Endpoint,
    SuiteCreate,
    SuiteUpdate,
    Suite,
    SuiteResponse,
)

from .vault import (
    VaultItemCreate,
    VaultItem,
)

from .history import (
    RequestHistoryEntry,
    RequestHistoryListResponse,
)

from .execute import (
    ExecuteRequest,
    ExecuteResponse,
)

__all__ = [
    # Suite schemas
    "EndpointStatus",
    "EndpointDraft",
    "EndpointUpdate",
    "Endpoint",
    "SuiteCreate",
    "SuiteUpdate",
    "Suite",
    "SuiteResponse",
    # Vault schemas
    "VaultItemCreate",
    "VaultItem",
    # History schemas
    "RequestHistoryEntry",
    "RequestHistoryListResponse",
    # Execute schemas
    "ExecuteRequest",
    "ExecuteResponse",
]
