"""
Ad-hoc request line execution API routes.

Executes a request line without attaching it to a suite. Every execution
is recorded in request history.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import Workspace, get_workspace
from ..exceptions import APIException, ErrorResponse
from ..schemas.execute import ExecuteRequest, ExecuteResponse


router = APIRouter(prefix="/api/execute", tags=["execute"])


@router.post(
    "",
    response_model=ExecuteResponse,
    responses={
        200: {"model": ExecuteResponse, "description": "Successful execution"},
        422: {"model": ErrorResponse, "description": "Invalid request line"},
        429: {"model": ErrorResponse, "description": "Rate limited"},
        502: {"model": ErrorResponse, "description": "Execution failed"},
    }
)
async def execute_request_line(
    request: ExecuteRequest,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Execute a request line.

    Args:
        request: The request line to execute
        workspace: Application services

    Returns:
        ExecuteResponse with the sanitized payload from the execution API

    Raises:
        422 if the request line is empty or too long
        429 if the local rate limit is exhausted (Retry-After header set)
        502 if the execution failed; the detail is a safe error message
    """
    result = await workspace.engine.execute_request_line(request.request_line)

    if not result.success:
        raise APIException(
            detail=result.error_message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="EXECUTION_FAILED"
        )

    return result
