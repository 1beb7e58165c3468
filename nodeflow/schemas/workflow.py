"""Workflow-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field


class StepSchema(BaseModel):
    """Schema for one step of a workflow."""

    name: str = Field(..., min_length=1, description="Unique name for this step in the workflow")
    node_type: str = Field(..., min_length=1, description="Registered node type identifier")
    params: dict[str, Any] = Field(default_factory=dict, description="Overrides merged into the node work config")
    next: list[str] = Field(default_factory=list, description="Candidate next steps, first is the default path")
    conditions: dict[str, str] = Field(
        default_factory=dict, description="Expression to next step name, evaluated in order"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "name": "normalize",
                "node_type": "text",
                "params": {"operation": "strip"},
                "next": ["end"],
                "conditions": {},
            }
        }


class WorkflowCreateRequest(BaseModel):
    """Request schema for creating a workflow."""

    name: str = Field(..., min_length=1, max_length=255, description="Unique workflow name")
    description: str | None = Field(None, max_length=1000, description="Workflow description")
    steps: list[StepSchema] = Field(default_factory=list, description="Steps in display order")
    start_step_name: str | None = Field(None, description="Defaults to the first step")


class WorkflowUpdateRequest(BaseModel):
    """Request schema for updating a workflow."""

    name: str | None = Field(None, min_length=1, max_length=255, description="Workflow name")
    description: str | None = Field(None, max_length=1000, description="Workflow description")
    steps: list[StepSchema] | None = Field(None, description="Replacement steps in display order")
    start_step_name: str | None = Field(None, description="Start step name")


class StepCreateRequest(BaseModel):
    """Request schema for adding a step."""

    step: StepSchema
    after: str | None = Field(None, description="Insert after this step")
    before: str | None = Field(None, description="Insert before this step")


class StepUpdateRequest(BaseModel):
    """Partial step update; the step name cannot change."""

    node_type: str | None = None
    params: dict[str, Any] | None = None
    next: list[str] | None = None
    conditions: dict[str, str] | None = None


class StepReorderRequest(BaseModel):
    """New display order; the first step becomes the start step."""

    steps_order: list[str] = Field(..., min_length=1)


class WorkflowRunRequest(BaseModel):
    """Request schema for running a workflow."""

    input: Any = Field(None, description="Raw input: text, chat messages or any JSON value")
    max_steps: int | None = Field(None, ge=1, description="Fail the run after this many steps")


class WorkflowListItem(BaseModel):
    """Schema for workflow in list response."""

    id: str
    name: str
    description: str
    step_count: int
    start_step_name: str | None
    created_at: str
    updated_at: str


class WorkflowDetailResponse(BaseModel):
    """Detailed workflow response."""

    id: str
    name: str
    description: str
    definition: dict[str, Any]
    created_at: str
    updated_at: str
