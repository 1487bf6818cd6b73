"""
Test suite API routes.

Provides endpoints for managing the current suite and its endpoints,
running them singly or as a batch, exporting the suite, and moving suites
in and out of history.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from ..dependencies import Workspace, get_workspace
from ..exceptions import APIException, ResourceNotFoundError
from ..schemas.suite import (
    Endpoint,
    EndpointDraft,
    EndpointUpdate,
    Suite,
    SuiteCreate,
    SuiteResponse,
    SuiteUpdate,
)
from ..services.suite_export import export_markdown


router = APIRouter(prefix="/api/suites", tags=["suites"])


def _require_current(workspace: Workspace) -> Suite:
    suite = workspace.store.current
    if suite is None:
        raise APIException(
            detail="No active test suite",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NO_ACTIVE_SUITE"
        )
    return suite


@router.get("/current", response_model=SuiteResponse)
def get_current_suite(workspace: Workspace = Depends(get_workspace)):
    """Get the current suite (or null) and whether a batch is running."""
    return SuiteResponse(
        suite=workspace.store.current,
        is_running=workspace.engine.is_running
    )


@router.post("", response_model=Suite, status_code=status.HTTP_201_CREATED)
def create_suite(
    suite_data: SuiteCreate,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Start a new suite.

    A current suite with endpoints is archived to history first.
    """
    workspace.store.archive_current(skip_empty=True)
    return workspace.store.create_suite(
        initial_origin=suite_data.base_origin,
        title=suite_data.title,
        description=suite_data.description
    )


@router.patch("/current", response_model=Suite)
def update_current_suite(
    suite_data: SuiteUpdate,
    workspace: Workspace = Depends(get_workspace)
):
    """Update the title or description of the current suite."""
    suite = _require_current(workspace)
    return workspace.store.update_suite(suite, suite_data)


@router.post("/current/archive", response_model=Suite)
def archive_current_suite(workspace: Workspace = Depends(get_workspace)):
    """Move the current suite to history and clear it."""
    suite = _require_current(workspace)
    if workspace.engine.is_running:
        workspace.engine.stop_all(suite)
    return workspace.store.archive_current()


@router.post(
    "/current/endpoints",
    response_model=Endpoint,
    status_code=status.HTTP_201_CREATED
)
def attach_endpoint(
    draft: EndpointDraft,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Attach an endpoint to the current suite.

    Creates a suite when none is active. The first endpoint fixes the
    suite's base URL; endpoints targeting another origin are rejected.

    Raises:
        422 if the request line or its URL is invalid
        400 if the request line has no URL directive
        409 if the URL's origin differs from the suite's base URL
    """
    return workspace.store.attach_endpoint(workspace.store.current, draft)


@router.put("/current/endpoints/{endpoint_id}", response_model=Endpoint)
def update_endpoint(
    endpoint_id: str,
    endpoint_data: EndpointUpdate,
    workspace: Workspace = Depends(get_workspace)
):
    """Edit the title, description or request line of an endpoint."""
    suite = _require_current(workspace)
    return workspace.store.edit_endpoint(suite, endpoint_id, endpoint_data)


@router.delete("/current/endpoints/{endpoint_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_endpoint(endpoint_id: str, workspace: Workspace = Depends(get_workspace)):
    """Remove an endpoint from the current suite."""
    suite = _require_current(workspace)
    if not workspace.store.remove_endpoint(suite, endpoint_id):
        raise ResourceNotFoundError("Endpoint", endpoint_id)
    return None


@router.post("/current/endpoints/{endpoint_id}/execute", response_model=Endpoint)
async def execute_endpoint(endpoint_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Execute one endpoint of the current suite.

    Execution failures are recorded on the endpoint (status ``failed`` with
    a safe error message) rather than returned as HTTP errors.
    """
    suite = _require_current(workspace)
    endpoint = await workspace.engine.execute_one(suite, endpoint_id)
    if endpoint is None:
        raise ResourceNotFoundError("Endpoint", endpoint_id)
    return endpoint


@router.post("/current/run", response_model=Suite)
async def run_all_endpoints(workspace: Workspace = Depends(get_workspace)):
    """Execute every endpoint of the current suite in order."""
    suite = _require_current(workspace)
    if not suite.endpoints:
        raise APIException(
            detail="No endpoints to execute",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BAD_REQUEST"
        )
    if workspace.engine.is_running:
        raise APIException(
            detail="A batch is already running",
            status_code=status.HTTP_409_CONFLICT,
            error_code="ALREADY_RUNNING"
        )
    return await workspace.engine.execute_all(suite)


@router.post("/current/stop", response_model=SuiteResponse)
def stop_all_endpoints(workspace: Workspace = Depends(get_workspace)):
    """Stop the running batch; running endpoints return to pending."""
    suite = _require_current(workspace)
    workspace.engine.stop_all(suite)
    return SuiteResponse(suite=suite, is_running=workspace.engine.is_running)


@router.get("/current/export", response_class=PlainTextResponse)
def export_current_suite(workspace: Workspace = Depends(get_workspace)):
    """Download the current suite as a Markdown report."""
    suite = _require_current(workspace)
    filename = "".join(c if c.isalnum() or c in "-_" else "-" for c in suite.title) or "api-test-suite"
    return PlainTextResponse(
        export_markdown(suite),
        media_type="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{filename}.md"'}
    )


@router.get("/history", response_model=list[Suite])
def list_suite_history(workspace: Workspace = Depends(get_workspace)):
    """Get all unexpired suites in history."""
    return workspace.store.history


@router.post("/history/{suite_id}/load", response_model=Suite)
def load_suite_from_history(suite_id: str, workspace: Workspace = Depends(get_workspace)):
    """Make a suite from history the current suite."""
    if workspace.engine.is_running and workspace.store.current is not None:
        workspace.engine.stop_all(workspace.store.current)
    return workspace.store.load_from_history(suite_id)


@router.delete("/history/{suite_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_suite_from_history(suite_id: str, workspace: Workspace = Depends(get_workspace)):
    """Delete a suite from history; clears the current suite if it is the same."""
    workspace.store.delete_from_history(suite_id)
    return None
