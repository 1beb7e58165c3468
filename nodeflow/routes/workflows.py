"""Workflow routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ..core.exceptions import (
    InvalidWorkflowDefinitionError,
    StepNotFoundError,
    ValidationError,
    WorkflowNotFoundError,
)
from ..core.dependencies import get_workflow_service
from ..services.workflow_service import WorkflowService
from ..schemas.workflow import (
    StepCreateRequest,
    StepReorderRequest,
    StepUpdateRequest,
    WorkflowCreateRequest,
    WorkflowDetailResponse,
    WorkflowListItem,
    WorkflowRunRequest,
    WorkflowUpdateRequest,
)
from ..schemas.execution import ExecutionResponse
from ..schemas.common import SuccessResponse

router = APIRouter(prefix="/workflows")


# Type alias for dependency injection
WorkflowServiceDep = Annotated[WorkflowService, Depends(get_workflow_service)]


@router.get("", response_model=list[WorkflowListItem])
async def list_workflows(service: WorkflowServiceDep) -> list[WorkflowListItem]:
    """List all workflows."""
    return await service.list_workflows()


@router.get("/{workflow_id}", response_model=WorkflowDetailResponse)
async def get_workflow(
    workflow_id: str,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    """Get a single workflow by ID."""
    try:
        return await service.get_workflow(workflow_id)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("", response_model=WorkflowDetailResponse, status_code=201)
async def create_workflow(
    workflow: WorkflowCreateRequest,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    """Create a new workflow."""
    try:
        return await service.create_workflow(workflow)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.put("/{workflow_id}", response_model=WorkflowDetailResponse)
async def update_workflow(
    workflow_id: str,
    workflow: WorkflowUpdateRequest,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    """Update an existing workflow."""
    try:
        return await service.update_workflow(workflow_id, workflow)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.delete("/{workflow_id}", response_model=SuccessResponse)
async def delete_workflow(
    workflow_id: str,
    service: WorkflowServiceDep,
) -> SuccessResponse:
    """Delete a workflow."""
    try:
        await service.delete_workflow(workflow_id)
        return SuccessResponse(message="Workflow deleted")
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


# --- Steps ---


@router.post("/{workflow_id}/steps", response_model=WorkflowDetailResponse, status_code=201)
async def add_step(
    workflow_id: str,
    body: StepCreateRequest,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    """Add a step to a workflow."""
    try:
        return await service.add_step(workflow_id, body)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.patch("/{workflow_id}/steps/{step_name}", response_model=WorkflowDetailResponse)
async def update_step(
    workflow_id: str,
    step_name: str,
    body: StepUpdateRequest,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    """Partially update a step."""
    try:
        return await service.update_step(workflow_id, step_name, body)
    except (WorkflowNotFoundError, StepNotFoundError) as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.delete("/{workflow_id}/steps/{step_name}", response_model=WorkflowDetailResponse)
async def remove_step(
    workflow_id: str,
    step_name: str,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    """Remove a step and every reference to it."""
    try:
        return await service.remove_step(workflow_id, step_name)
    except (WorkflowNotFoundError, StepNotFoundError) as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.put("/{workflow_id}/steps/order", response_model=WorkflowDetailResponse)
async def reorder_steps(
    workflow_id: str,
    body: StepReorderRequest,
    service: WorkflowServiceDep,
) -> WorkflowDetailResponse:
    """Reorder steps; the first one becomes the start step."""
    try:
        return await service.reorder_steps(workflow_id, body.steps_order)
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)


# --- Running ---


@router.post("/{workflow_id}/run", response_model=ExecutionResponse)
async def run_workflow(
    workflow_id: str,
    service: WorkflowServiceDep,
    body: WorkflowRunRequest | None = None,
) -> ExecutionResponse:
    """Run a saved workflow with optional input."""
    try:
        return await service.run_workflow(workflow_id, body or WorkflowRunRequest())
    except WorkflowNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidWorkflowDefinitionError as e:
        raise HTTPException(status_code=400, detail=e.message)
