"""Pydantic schemas for API request/response validation."""

from .workflow import (
    StepSchema,
    WorkflowCreateRequest,
    WorkflowUpdateRequest,
    StepCreateRequest,
    StepUpdateRequest,
    StepReorderRequest,
    WorkflowRunRequest,
    WorkflowListItem,
    WorkflowDetailResponse,
)
from .execution import (
    ExecutionResponse,
    ExecutionListItem,
    ExecutionDetailResponse,
    ExecutionControlResponse,
)
from .node import (
    NodeTypeInfoSchema,
    NodeConfigResponse,
    NodeConfigUpdateRequest,
)
from .common import (
    SuccessResponse,
    HealthResponse,
    RootResponse,
)

__all__ = [
    # Workflow schemas
    "StepSchema",
    "WorkflowCreateRequest",
    "WorkflowUpdateRequest",
    "StepCreateRequest",
    "StepUpdateRequest",
    "StepReorderRequest",
    "WorkflowRunRequest",
    "WorkflowListItem",
    "WorkflowDetailResponse",
    # Execution schemas
    "ExecutionResponse",
    "ExecutionListItem",
    "ExecutionDetailResponse",
    "ExecutionControlResponse",
    # Node schemas
    "NodeTypeInfoSchema",
    "NodeConfigResponse",
    "NodeConfigUpdateRequest",
    # Common schemas
    "SuccessResponse",
    "HealthResponse",
    "RootResponse",
]
