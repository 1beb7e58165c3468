"""Repository layer for data persistence."""

from .workflow_repository import WorkflowRepository
from .node_config_repository import NodeConfigRepository
from .execution_repository import ExecutionRepository

__all__ = [
    "WorkflowRepository",
    "NodeConfigRepository",
    "ExecutionRepository",
]
