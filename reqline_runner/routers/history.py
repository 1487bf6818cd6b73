"""
Request history API routes.

Provides endpoints for viewing and clearing the history of ad-hoc
request line executions. Entries expire with the persisted TTL.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import Workspace, get_workspace
from ..schemas.history import RequestHistoryListResponse


router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("", response_model=RequestHistoryListResponse)
def list_history(
    skip: int = 0,
    limit: int = 100,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Get request history ordered by execution time (descending).

    Args:
        skip: Number of records to skip (for pagination)
        limit: Maximum number of records to return

    Returns:
        RequestHistoryListResponse with items and total count
    """
    entries = workspace.store.list_request_history()
    return RequestHistoryListResponse(
        items=entries[skip:skip + limit],
        total=len(entries)
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_all_history(workspace: Workspace = Depends(get_workspace)):
    """Clear all request history."""
    workspace.store.clear_request_history()
    return None
