"""Service layer for workflow engine business logic."""

from .workflow_service import WorkflowService
from .execution_service import ExecutionService
from .node_service import NodeService

__all__ = [
    "WorkflowService",
    "ExecutionService",
    "NodeService",
]
