"""Execution-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ExecutionResponse(BaseModel):
    """Response schema for a workflow run."""

    execution_id: str = Field(..., description="Unique execution ID")
    status: str = Field(..., description="Final status: completed, failed or stopped")
    output: dict[str, Any] | None = Field(None, description="Final pipeline")
    step_results: dict[str, Any] = Field(default_factory=dict, description="Pipeline produced by each step")
    error: str | None = None


class ExecutionListItem(BaseModel):
    """Schema for execution in list response."""

    id: str
    workflow_id: str
    workflow_name: str
    status: str
    start_time: str
    end_time: str | None
    error: str | None


class ExecutionDetailResponse(BaseModel):
    """Detailed execution response."""

    id: str
    workflow_id: str
    workflow_name: str
    status: str
    start_time: str
    end_time: str | None
    input: dict[str, Any] | None
    output: dict[str, Any] | None
    step_results: dict[str, Any]
    history: list[dict[str, Any]]
    error: str | None


class ExecutionControlResponse(BaseModel):
    """Result of a pause, resume or stop request."""

    execution_id: str
    action: str
    success: bool
    status: str | None = None
